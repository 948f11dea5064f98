"""Live capture: per-face deduplication, gallery eviction and the main loop."""
