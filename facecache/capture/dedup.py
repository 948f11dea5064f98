"""Admit / replace / discard policy applied to each eye-validated face region."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Union

import cv2
import numpy as np
import pandas as pd

from facecache.io_utils import ensure_dir, face_crop_path
from facecache.recognition.gallery import FaceGallery
from facecache.recognition.matcher import DEFAULT_SIMILARITY_THRESHOLD, match_descriptor
from facecache.recognition.phash import Descriptor, HashComputeError, PerceptualHasher
from facecache.types import DedupAction, DedupResult, GalleryEntry, Tenure

LOGGER = logging.getLogger("facecache.capture.dedup")

ImageWriter = Callable[[str, np.ndarray], bool]


@dataclass
class AdmissionRecord:
    key: str
    timestamp_ns: int
    face_idx: int
    similarity: int
    written: bool


def write_image(path: str, image: np.ndarray, writer: ImageWriter = cv2.imwrite) -> bool:
    """Persist ``image`` at ``path``; failures are logged and reported as False."""
    try:
        ok = bool(writer(path, image))
    except (cv2.error, OSError) as exc:
        LOGGER.error("Failed to write %s: %s", path, exc)
        return False
    if not ok:
        LOGGER.error("Failed to write %s", path)
    return ok


class DedupController:
    """Decides what happens to each candidate face.

    * no collision: admit a temporary entry and save the crop;
    * collision with a temporary entry: refresh it in place, no file written;
    * collision with a permanent entry: drop the candidate.

    Admission is committed to the gallery before the crop is written, so a
    failed write leaves the entry in place.
    """

    def __init__(
        self,
        gallery: FaceGallery,
        hasher: PerceptualHasher,
        output_dir: Union[str, Path],
        threshold: int = DEFAULT_SIMILARITY_THRESHOLD,
        image_writer: ImageWriter = cv2.imwrite,
    ) -> None:
        self.gallery = gallery
        self.hasher = hasher
        self.output_dir = str(output_dir)
        self.threshold = int(threshold)
        self.image_writer = image_writer
        self.admissions: List[AdmissionRecord] = []

    def process(self, face_region: np.ndarray, face_idx: int, timestamp_ns: int) -> DedupResult:
        try:
            candidate = self.hasher.compute(face_region)
        except HashComputeError as exc:
            LOGGER.warning("Skipping face %d: %s", face_idx, exc)
            return DedupResult(similarity=0, saved=False, action=DedupAction.SKIP)

        result = match_descriptor(candidate, self.gallery.snapshot(), self.hasher.compare, self.threshold)
        if result.matched and result.entry is not None:
            if result.entry.is_permanent:
                candidate.release()
                LOGGER.debug("Face %d matches permanent %s (S=%d); discarded", face_idx, result.key, result.best_similarity)
                return DedupResult(result.best_similarity, False, DedupAction.DISCARD, result.key)
            if self.gallery.replace(result.key, candidate, timestamp_ns):
                LOGGER.debug("Face %d refreshed %s (S=%d)", face_idx, result.key, result.best_similarity)
                return DedupResult(result.best_similarity, False, DedupAction.REPLACE, result.key)
            LOGGER.debug("Matched entry %s vanished before refresh; admitting face %d", result.key, face_idx)

        return self._admit(candidate, face_region, face_idx, timestamp_ns, result.best_similarity)

    def _admit(
        self,
        candidate: Descriptor,
        face_region: np.ndarray,
        face_idx: int,
        timestamp_ns: int,
        similarity: int,
    ) -> DedupResult:
        key = face_crop_path(self.output_dir, timestamp_ns, face_idx)
        previous = self.gallery.delete(key)
        if previous is not None:
            previous.descriptor.release()
        self.gallery.set(key, GalleryEntry(descriptor=candidate, timestamp_ns=int(timestamp_ns), tenure=Tenure.TEMPORARY))
        written = write_image(key, face_region, self.image_writer)
        self.admissions.append(AdmissionRecord(key, int(timestamp_ns), face_idx, similarity, written))
        LOGGER.info("Admitted new face %s (S=%d)", key, similarity)
        return DedupResult(similarity, True, DedupAction.ADMIT, key)

    def write_manifest(self, path: Path) -> Optional[Path]:
        """Write the admissions recorded this session as CSV."""
        if not self.admissions:
            LOGGER.info("No admissions this session; manifest not written")
            return None
        ensure_dir(path.parent)
        df = pd.DataFrame([vars(record) for record in self.admissions])
        df.to_csv(path, index=False)
        LOGGER.info("Wrote %d admissions to %s", len(df), path)
        return path
