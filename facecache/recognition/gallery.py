"""Thread-safe face gallery shared by the capture loop and the evictor."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

from facecache.recognition.phash import Descriptor
from facecache.types import GalleryEntry

LOGGER = logging.getLogger("facecache.recognition.gallery")

EntryPredicate = Callable[[str, GalleryEntry], bool]


class FaceGallery:
    """Mapping from entry key (a filename) to :class:`GalleryEntry`.

    Every public operation takes the same lock, so each one is atomic with
    respect to the others. ``snapshot`` hands back an independent list, letting
    callers iterate without holding the lock while other threads mutate.

    ``set`` and ``delete`` leave descriptor release to the caller. Deletions the
    gallery performs on its own (``discard_where``, ``clear``, ``replace``)
    release descriptors inside the critical section.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, GalleryEntry] = {}
        self._lock = threading.Lock()

    def set(self, key: str, entry: GalleryEntry) -> None:
        with self._lock:
            self._entries[key] = entry

    def get(self, key: str) -> Optional[GalleryEntry]:
        with self._lock:
            return self._entries.get(key)

    def delete(self, key: str) -> Optional[GalleryEntry]:
        with self._lock:
            return self._entries.pop(key, None)

    def length(self) -> int:
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.length()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def snapshot(self) -> List[Tuple[str, GalleryEntry]]:
        with self._lock:
            return list(self._entries.items())

    def replace(self, key: str, descriptor: Descriptor, timestamp_ns: int) -> bool:
        """Swap a temporary entry's descriptor and timestamp in place.

        The outgoing descriptor is released before the new one is installed.
        Returns False without touching anything when the key is gone or the
        entry is permanent.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.is_permanent:
                return False
            entry.descriptor.release()
            entry.descriptor = descriptor
            entry.timestamp_ns = max(entry.timestamp_ns, int(timestamp_ns))
            return True

    def discard_where(self, predicate: EntryPredicate) -> int:
        """Delete and release every entry matching ``predicate``."""
        with self._lock:
            doomed = [key for key, entry in self._entries.items() if predicate(key, entry)]
            for key in doomed:
                self._entries.pop(key).descriptor.release()
        if doomed:
            LOGGER.debug("Discarded %d gallery entries", len(doomed))
        return len(doomed)

    def clear(self) -> int:
        """Delete and release every entry."""
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
            for entry in entries:
                entry.descriptor.release()
        return len(entries)
