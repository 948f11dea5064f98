"""
Core package init for the live face capture cache.

Makes the `facecache` modules importable without requiring an editable install.
"""

__all__ = [
    "capture",
    "detectors",
    "recognition",
    "viz",
    "config",
    "io_utils",
    "types",
]
