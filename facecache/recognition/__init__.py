"""Face fingerprinting, gallery storage and matching."""
