"""On-screen annotation helpers."""
