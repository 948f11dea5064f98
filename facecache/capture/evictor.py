"""Background pruning of stale temporary gallery entries."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from facecache.recognition.gallery import FaceGallery
from facecache.types import NANOS_PER_SECOND

LOGGER = logging.getLogger("facecache.capture.evictor")

Clock = Callable[[], int]


class Evictor:
    """Wakes every ``period_sec`` and prunes the shared gallery.

    A non-forced prune is a no-op while the gallery holds fewer than
    ``capacity`` entries; past that, temporary entries older than
    ``max_age_sec`` are removed. Permanent entries survive everything but a
    forced prune.
    """

    def __init__(
        self,
        gallery: FaceGallery,
        period_sec: float = 60.0,
        capacity: int = 100,
        max_age_sec: float = 300.0,
        clock: Clock = time.time_ns,
    ) -> None:
        self.gallery = gallery
        self.period_sec = float(period_sec)
        self.capacity = int(capacity)
        self.max_age_ns = int(max_age_sec * NANOS_PER_SECOND)
        self.clock = clock
        self._stop = threading.Event()
        self._prune_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="gallery-evictor", daemon=True)
        self._thread.start()
        LOGGER.info(
            "Evictor started period=%.1fs capacity=%d max_age=%.1fs",
            self.period_sec,
            self.capacity,
            self.max_age_ns / NANOS_PER_SECOND,
        )

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the timer to exit and wait for an in-flight prune to finish."""
        self._stop.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                LOGGER.warning("Evictor thread did not stop within %.1fs", timeout or 0.0)
        self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.period_sec):
            try:
                self.prune()
            except Exception:  # pragma: no cover - keep the timer alive
                LOGGER.exception("Gallery prune failed")

    def prune(self, force: bool = False, now_ns: Optional[int] = None) -> int:
        """Remove eligible entries and release their descriptors; returns the count."""
        with self._prune_lock:
            if force:
                removed = self.gallery.clear()
                LOGGER.info("Forced prune released %d entries", removed)
                return removed

            size = self.gallery.length()
            if size < self.capacity:
                LOGGER.debug("Gallery size %d below capacity %d; prune skipped", size, self.capacity)
                return 0
            now = self.clock() if now_ns is None else int(now_ns)
            cutoff = now - self.max_age_ns
            removed = self.gallery.discard_where(
                lambda _key, entry: entry.is_temporary and entry.timestamp_ns < cutoff
            )
            LOGGER.info("Pruned %d stale entries (gallery size %d -> %d)", removed, size, self.gallery.length())
            return removed
