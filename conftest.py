"""Repository-root conftest so tests import `facecache` and `scripts` from a checkout."""
