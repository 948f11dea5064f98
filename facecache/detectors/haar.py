"""Haar cascade face and eye detectors."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Tuple, Union

import cv2
import numpy as np

from facecache.types import Rect, rect_from_xywh

LOGGER = logging.getLogger("facecache.detectors.haar")


class DeviceUnavailableError(RuntimeError):
    """Raised when a camera or cascade file cannot be opened."""


class HaarCascadeDetector:
    """Wrapper around ``cv2.CascadeClassifier`` returning x1,y1,x2,y2 rectangles."""

    def __init__(
        self,
        cascade_path: Union[str, Path],
        scale_factor: float = 1.1,
        min_neighbors: int = 3,
        min_size: Tuple[int, int] = (0, 0),
    ) -> None:
        self.cascade_path = str(cascade_path)
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_size = tuple(int(v) for v in min_size)
        self.classifier = cv2.CascadeClassifier()
        if not Path(self.cascade_path).is_file() or not self.classifier.load(self.cascade_path):
            raise DeviceUnavailableError(f"Unable to load cascade file: {self.cascade_path}")
        LOGGER.info(
            "Loaded cascade %s scale_factor=%.2f min_neighbors=%d",
            self.cascade_path,
            scale_factor,
            min_neighbors,
        )

    def detect(self, image: np.ndarray) -> List[Rect]:
        if image is None or image.size == 0:
            return []
        gray = image if image.ndim == 2 else cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        found = self.classifier.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            minSize=self.min_size,
        )
        return [rect_from_xywh(*map(int, box)) for box in found]


def crop_to_rect(image: np.ndarray, rect: Rect) -> np.ndarray:
    """Return the view of ``image`` covered by ``rect``, clipped to the image."""
    x1, y1, x2, y2 = rect
    height, width = image.shape[:2]
    x1, x2 = max(0, min(x1, width)), max(0, min(x2, width))
    y1, y2 = max(0, min(y1, height)), max(0, min(y2, height))
    return image[y1:y2, x1:x2]
