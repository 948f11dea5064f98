"""Common dataclasses and type aliases used across the facecache package."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Tuple

from facecache.recognition.phash import Descriptor

# Rectangle order: x1, y1, x2, y2 (pixel coordinates, x2/y2 exclusive)
Rect = Tuple[int, int, int, int]

NANOS_PER_SECOND = 1_000_000_000
NANOS_PER_MILLI = 1_000_000


class Tenure(enum.Enum):
    """Whether a gallery entry came from the seed directory or live capture."""

    PERMANENT = "permanent"
    TEMPORARY = "temporary"


class DedupAction(str, enum.Enum):
    ADMIT = "admit"
    REPLACE = "replace"
    DISCARD = "discard"
    SKIP = "skip"


@dataclass
class GalleryEntry:
    """Record held in the face gallery; owns its descriptor."""

    descriptor: Descriptor
    timestamp_ns: int = 0
    tenure: Tenure = Tenure.TEMPORARY

    @property
    def is_permanent(self) -> bool:
        return self.tenure is Tenure.PERMANENT

    @property
    def is_temporary(self) -> bool:
        return self.tenure is Tenure.TEMPORARY


@dataclass
class MatchResult:
    """Outcome of scanning the gallery for a candidate descriptor."""

    best_similarity: int = 0
    key: Optional[str] = None
    entry: Optional[GalleryEntry] = None

    @property
    def matched(self) -> bool:
        return self.key is not None


@dataclass
class DedupResult:
    """What the dedup controller did with one face region."""

    similarity: int
    saved: bool
    action: DedupAction
    key: Optional[str] = None

    def as_tuple(self) -> Tuple[int, bool]:
        return self.similarity, self.saved


def rect_from_xywh(x: int, y: int, w: int, h: int) -> Rect:
    return int(x), int(y), int(x + w), int(y + h)
