import time

import numpy as np

from facecache.capture.evictor import Evictor
from facecache.recognition.gallery import FaceGallery
from facecache.recognition.phash import Descriptor
from facecache.types import NANOS_PER_SECOND, GalleryEntry, Tenure

NOW = 1_700_000_000 * NANOS_PER_SECOND


def _populate(gallery: FaceGallery, count: int, age_sec: float, tenure=Tenure.TEMPORARY, prefix="t"):
    entries = []
    for idx in range(count):
        ts = 0 if tenure is Tenure.PERMANENT else NOW - int(age_sec * NANOS_PER_SECOND)
        entry = GalleryEntry(descriptor=Descriptor(np.zeros(8, dtype=np.uint8)), timestamp_ns=ts, tenure=tenure)
        gallery.set(f"{prefix}_{idx}.png", entry)
        entries.append(entry)
    return entries


def _evictor(gallery: FaceGallery, **kwargs) -> Evictor:
    return Evictor(gallery, clock=lambda: NOW, **kwargs)


def test_prune_removes_stale_entries_when_over_capacity():
    gallery = FaceGallery()
    entries = _populate(gallery, 150, age_sec=400)

    removed = _evictor(gallery).prune()

    assert removed == 150
    assert len(gallery) == 0
    assert all(entry.descriptor.released for entry in entries)


def test_prune_is_noop_below_capacity():
    gallery = FaceGallery()
    entries = _populate(gallery, 50, age_sec=400)

    assert _evictor(gallery).prune() == 0
    assert len(gallery) == 50
    assert not any(entry.descriptor.released for entry in entries)


def test_prune_keeps_fresh_and_permanent_entries():
    gallery = FaceGallery()
    _populate(gallery, 80, age_sec=400, prefix="old")
    _populate(gallery, 30, age_sec=10, prefix="fresh")
    seeds = _populate(gallery, 5, age_sec=0, tenure=Tenure.PERMANENT, prefix="seed")

    removed = _evictor(gallery).prune()

    assert removed == 80
    remaining = gallery.snapshot()
    assert len(remaining) == 35
    cutoff = NOW - 300 * NANOS_PER_SECOND
    for _key, entry in remaining:
        assert entry.is_permanent or entry.timestamp_ns >= cutoff
    assert not any(seed.descriptor.released for seed in seeds)


def test_boundary_age_is_retained():
    gallery = FaceGallery()
    _populate(gallery, 1, age_sec=300)

    assert _evictor(gallery, capacity=0).prune() == 0
    assert len(gallery) == 1


def test_forced_prune_clears_everything():
    gallery = FaceGallery()
    temps = _populate(gallery, 3, age_sec=1)
    seeds = _populate(gallery, 2, age_sec=0, tenure=Tenure.PERMANENT, prefix="seed")

    removed = _evictor(gallery).prune(force=True)

    assert removed == 5
    assert gallery.length() == 0
    assert all(entry.descriptor.released for entry in temps + seeds)


def test_explicit_now_overrides_clock():
    gallery = FaceGallery()
    _populate(gallery, 1, age_sec=10)

    later = NOW + 1000 * NANOS_PER_SECOND
    assert _evictor(gallery, capacity=0).prune(now_ns=later) == 1


def test_background_thread_prunes_and_stops():
    gallery = FaceGallery()
    _populate(gallery, 3, age_sec=400)
    evictor = _evictor(gallery, period_sec=0.01, capacity=1)

    evictor.start()
    try:
        deadline = time.monotonic() + 5.0
        while len(gallery) and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        evictor.stop(timeout=5.0)

    assert len(gallery) == 0
    assert not evictor.running


def test_stop_before_first_tick_skips_prune():
    gallery = FaceGallery()
    _populate(gallery, 3, age_sec=400)
    evictor = _evictor(gallery, period_sec=60.0, capacity=1)

    evictor.start()
    evictor.stop(timeout=5.0)

    assert len(gallery) == 3
    assert not evictor.running
