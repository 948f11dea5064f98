"""First-over-threshold matcher over a gallery snapshot."""

from __future__ import annotations

import logging
import math
from typing import Callable, Iterable, Tuple

from facecache.recognition.phash import Descriptor, DescriptorReleasedError
from facecache.types import GalleryEntry, MatchResult

LOGGER = logging.getLogger("facecache.recognition.matcher")

DEFAULT_SIMILARITY_THRESHOLD = 60

CompareFn = Callable[[Descriptor, Descriptor], float]


def to_percent(similarity: float) -> int:
    """Convert a [0, 1] similarity to a floored integer percentage in [0, 100]."""
    percent = int(math.floor(float(similarity) * 100.0))
    return min(100, max(0, percent))


def match_descriptor(
    candidate: Descriptor,
    snapshot: Iterable[Tuple[str, GalleryEntry]],
    compare: CompareFn,
    threshold: int = DEFAULT_SIMILARITY_THRESHOLD,
) -> MatchResult:
    """Scan ``snapshot`` for the first entry whose similarity exceeds ``threshold``.

    Scanning stops at the first collision, so ``best_similarity`` is then the
    matched entry's similarity rather than the global maximum. Entries whose
    descriptor was released by a concurrent prune are skipped.
    """
    result = MatchResult()
    for key, entry in snapshot:
        try:
            similarity = to_percent(compare(candidate, entry.descriptor))
        except DescriptorReleasedError:
            LOGGER.debug("Skipping %s: descriptor released during scan", key)
            continue
        if similarity > threshold:
            return MatchResult(best_similarity=similarity, key=key, entry=entry)
        if similarity > result.best_similarity:
            result.best_similarity = similarity
    return result
