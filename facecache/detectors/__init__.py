"""Region detectors backed by OpenCV cascade classifiers."""
