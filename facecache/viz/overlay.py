"""Overlay rendering for accepted face rectangles."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

import cv2
import numpy as np

from facecache.types import Rect

# BGR form of RGBA (0xCC, 0x66, 0x00, 0x00)
DEFAULT_BOX_COLOR: Tuple[int, int, int] = (0x00, 0x66, 0xCC)


@dataclass
class FaceBox:
    rect: Rect
    similarity: int


def similarity_label(similarity: int) -> str:
    return f"S: {similarity}"


def draw_face_boxes(
    frame: np.ndarray,
    boxes: Iterable[FaceBox],
    color: Tuple[int, int, int] = DEFAULT_BOX_COLOR,
    thickness: int = 2,
) -> np.ndarray:
    """Draw each rectangle with its similarity label anchored at the top-right corner."""
    for box in boxes:
        x1, y1, x2, y2 = map(int, box.rect)
        cv2.rectangle(frame, (x1, y1), (x2, y2), color, thickness)
        label = similarity_label(box.similarity)
        (text_w, text_h), _ = cv2.getTextSize(label, cv2.FONT_HERSHEY_PLAIN, 1.0, 1)
        text_x = max(0, x2 - text_w)
        text_y = max(text_h, y1 - 4)
        cv2.putText(frame, label, (text_x, text_y), cv2.FONT_HERSHEY_PLAIN, 1.0, color, 1)
    return frame
