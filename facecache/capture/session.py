"""Main capture loop gluing camera, detectors, dedup controller and evictor."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Tuple

import cv2
import numpy as np

from facecache.capture.dedup import DedupController, write_image
from facecache.capture.evictor import Evictor
from facecache.config import CaptureConfig
from facecache.detectors.haar import DeviceUnavailableError, HaarCascadeDetector, crop_to_rect
from facecache.io_utils import ensure_dir, frame_snapshot_path
from facecache.recognition.gallery import FaceGallery
from facecache.recognition.phash import PerceptualHasher
from facecache.recognition.seed import RectDetector, load_seed_gallery
from facecache.types import DedupAction, DedupResult
from facecache.viz.overlay import FaceBox, draw_face_boxes

LOGGER = logging.getLogger("facecache.capture.session")

QUIT_KEY = ord("q")


class Camera(Protocol):
    def read(self) -> Tuple[bool, Optional[np.ndarray]]: ...

    def release(self) -> None: ...


@dataclass
class FrameReport:
    faces_found: int = 0
    boxes: List[FaceBox] = field(default_factory=list)
    results: List[DedupResult] = field(default_factory=list)
    frame_path: Optional[str] = None

    @property
    def saved_any(self) -> bool:
        return any(result.saved for result in self.results)


def open_camera(index: int) -> cv2.VideoCapture:
    cap = cv2.VideoCapture(index)
    if not cap.isOpened():
        cap.release()
        raise DeviceUnavailableError(f"Unable to open camera device {index}")
    LOGGER.info("Opened camera device %d", index)
    return cap


class CaptureSession:
    """Owns every resource of one capture run; build it with :meth:`open`."""

    def __init__(
        self,
        config: CaptureConfig,
        camera: Camera,
        face_detector: RectDetector,
        eye_detector: RectDetector,
        controller: DedupController,
        evictor: Evictor,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        self.config = config
        self.camera = camera
        self.face_detector = face_detector
        self.eye_detector = eye_detector
        self.controller = controller
        self.evictor = evictor
        self.clock = clock
        self._closed = False

    @property
    def gallery(self) -> FaceGallery:
        return self.controller.gallery

    @classmethod
    def open(cls, config: CaptureConfig) -> "CaptureSession":
        """Load cascades, seed the gallery and open the camera.

        Raises DeviceUnavailableError when a cascade or the camera is missing.
        """
        face_detector = HaarCascadeDetector(
            config.face_cascade,
            scale_factor=config.face_scale_factor,
            min_neighbors=config.face_min_neighbors,
        )
        eye_detector = HaarCascadeDetector(
            config.eye_cascade,
            scale_factor=config.eye_scale_factor,
            min_neighbors=config.eye_min_neighbors,
        )
        ensure_dir(Path(config.output_dir))

        gallery = FaceGallery()
        hasher = PerceptualHasher(hash_size=config.hash_size)
        load_seed_gallery(Path(config.seed_dir), gallery, face_detector, hasher)

        controller = DedupController(
            gallery,
            hasher,
            output_dir=config.output_dir,
            threshold=config.similarity_threshold,
        )
        evictor = Evictor(
            gallery,
            period_sec=config.eviction_period_sec,
            capacity=config.eviction_capacity,
            max_age_sec=config.eviction_age_sec,
        )
        try:
            camera = open_camera(config.camera_index)
        except DeviceUnavailableError:
            gallery.clear()
            raise
        return cls(config, camera, face_detector, eye_detector, controller, evictor)

    def process_frame(self, frame: np.ndarray, timestamp_ns: int) -> FrameReport:
        """Run detection and dedup for every face in ``frame`` in detector order."""
        report = FrameReport()
        face_rects = self.face_detector.detect(frame)
        report.faces_found = len(face_rects)
        if face_rects:
            LOGGER.debug("found %d faces", len(face_rects))

        for idx, rect in enumerate(face_rects):
            region = crop_to_rect(frame, rect)
            eyes = self.eye_detector.detect(region)
            LOGGER.debug("face %d: eyes: %d", idx, len(eyes))
            if len(eyes) < self.config.min_eyes_required:
                continue
            result = self.controller.process(region, idx, timestamp_ns)
            report.results.append(result)
            if result.action is not DedupAction.SKIP:
                report.boxes.append(FaceBox(rect=rect, similarity=result.similarity))

        draw_face_boxes(frame, report.boxes, color=self.config.box_color, thickness=self.config.box_thickness)
        if report.saved_any:
            path = frame_snapshot_path(self.controller.output_dir, timestamp_ns)
            if write_image(path, frame, self.controller.image_writer):
                report.frame_path = path
        return report

    def run(self, max_frames: Optional[int] = None) -> int:
        """Capture until 'q', a failed camera read, or ``max_frames``; always shuts down."""
        frames = 0
        self.evictor.start()
        if self.config.show_window:
            cv2.namedWindow(self.config.window_name, cv2.WINDOW_NORMAL)
            cv2.setWindowProperty(self.config.window_name, cv2.WND_PROP_ASPECT_RATIO, cv2.WINDOW_NORMAL)
        try:
            while max_frames is None or frames < max_frames:
                ok, frame = self.camera.read()
                if not ok:
                    LOGGER.error("cannot read device")
                    break
                if frame is None or frame.size == 0:
                    continue
                frames += 1
                try:
                    self.process_frame(frame, self.clock())
                except Exception:
                    LOGGER.exception("Frame %d failed; continuing", frames)
                if self.config.show_window:
                    cv2.imshow(self.config.window_name, frame)
                    if cv2.waitKey(self.config.key_wait_ms) & 0xFF == QUIT_KEY:
                        LOGGER.info("exit")
                        break
        finally:
            self.shutdown()
        return frames

    def shutdown(self) -> None:
        """Stop the evictor, clear the gallery, export the manifest, release devices."""
        if self._closed:
            return
        self._closed = True
        self.evictor.stop()
        self.evictor.prune(force=True)
        manifest_path = self.config.manifest_path
        if manifest_path is not None:
            try:
                self.controller.write_manifest(manifest_path)
            except OSError as exc:
                LOGGER.error("Failed to write manifest %s: %s", manifest_path, exc)
        self.camera.release()
        if self.config.show_window:
            cv2.destroyAllWindows()
        LOGGER.info("Capture session closed")
