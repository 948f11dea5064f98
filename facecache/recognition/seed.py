"""Seed gallery loading from a directory of curated reference images."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Protocol

import cv2
import numpy as np

from facecache.detectors.haar import crop_to_rect
from facecache.recognition.gallery import FaceGallery
from facecache.recognition.phash import HashComputeError, PerceptualHasher
from facecache.types import GalleryEntry, Rect, Tenure

LOGGER = logging.getLogger("facecache.recognition.seed")

SEED_SUFFIXES = (".jpg", ".jpeg", ".png")


class RectDetector(Protocol):
    def detect(self, image: np.ndarray) -> List[Rect]: ...


def iter_seed_images(seed_dir: Path) -> Iterable[Path]:
    """Yield plain files in ``seed_dir`` with a lowercase image suffix, sorted by name.

    Raises OSError when the directory cannot be listed.
    """
    with os.scandir(seed_dir) as it:
        names = sorted(
            entry.name
            for entry in it
            if not entry.is_dir() and entry.name.endswith(SEED_SUFFIXES)
        )
    for name in names:
        yield Path(seed_dir) / name


def _load_gray(path: Path) -> Optional[np.ndarray]:
    image = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)
    if image is None or image.size == 0:
        return None
    return image


def load_seed_gallery(
    seed_dir: Path,
    gallery: FaceGallery,
    detector: RectDetector,
    hasher: PerceptualHasher,
) -> int:
    """Populate ``gallery`` with permanent entries keyed by seed file name.

    Only the first detected face of each image is used. An unreadable
    directory leaves the gallery untouched.
    """
    try:
        paths = list(iter_seed_images(seed_dir))
    except OSError as exc:
        LOGGER.warning("Seed directory %s unreadable (%s); starting without seeds", seed_dir, exc)
        return 0

    loaded = 0
    for path in paths:
        image = _load_gray(path)
        if image is None:
            LOGGER.warning("Unable to decode seed image %s", path)
            continue
        rects = detector.detect(image)
        if not rects:
            LOGGER.debug("No face found in seed image %s", path)
            continue
        try:
            descriptor = hasher.compute(crop_to_rect(image, rects[0]))
        except HashComputeError as exc:
            LOGGER.warning("Unable to fingerprint seed image %s: %s", path, exc)
            continue
        previous = gallery.delete(path.name)
        if previous is not None:
            previous.descriptor.release()
        gallery.set(path.name, GalleryEntry(descriptor=descriptor, timestamp_ns=0, tenure=Tenure.PERMANENT))
        loaded += 1

    LOGGER.info("Seed gallery loaded: %d of %d images from %s", loaded, len(paths), seed_dir)
    return loaded
