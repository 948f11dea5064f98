import threading

import numpy as np

from facecache.recognition.gallery import FaceGallery
from facecache.recognition.phash import Descriptor
from facecache.types import GalleryEntry, Tenure


def _entry(ts: int = 0, tenure: Tenure = Tenure.TEMPORARY) -> GalleryEntry:
    return GalleryEntry(descriptor=Descriptor(np.zeros(8, dtype=np.uint8)), timestamp_ns=ts, tenure=tenure)


def test_set_get_delete_and_length():
    gallery = FaceGallery()
    entry = _entry(5)
    gallery.set("a.png", entry)
    assert gallery.get("a.png") is entry
    assert len(gallery) == 1
    assert "a.png" in gallery

    removed = gallery.delete("a.png")
    assert removed is entry
    assert not removed.descriptor.released, "caller owns release after delete"
    assert gallery.delete("a.png") is None
    assert gallery.length() == 0


def test_snapshot_is_unaffected_by_later_mutation():
    gallery = FaceGallery()
    for idx in range(3):
        gallery.set(f"{idx}.png", _entry(idx))
    snapshot = gallery.snapshot()
    gallery.delete("0.png")
    gallery.set("new.png", _entry(9))

    assert sorted(key for key, _ in snapshot) == ["0.png", "1.png", "2.png"]
    assert len(gallery) == 3


def test_replace_releases_old_descriptor_and_refreshes_timestamp():
    gallery = FaceGallery()
    entry = _entry(100)
    old = entry.descriptor
    gallery.set("t.png", entry)
    new = Descriptor(np.ones(8, dtype=np.uint8))

    assert gallery.replace("t.png", new, 200)
    assert old.released
    assert gallery.get("t.png").descriptor is new
    assert gallery.get("t.png").timestamp_ns == 200


def test_replace_refuses_permanent_and_missing_entries():
    gallery = FaceGallery()
    seed = _entry(0, Tenure.PERMANENT)
    gallery.set("alice.png", seed)
    candidate = Descriptor(np.ones(8, dtype=np.uint8))

    assert not gallery.replace("alice.png", candidate, 50)
    assert not gallery.replace("missing.png", candidate, 50)
    assert not seed.descriptor.released
    assert gallery.get("alice.png").timestamp_ns == 0


def test_discard_where_and_clear_release_descriptors():
    gallery = FaceGallery()
    old, fresh = _entry(1), _entry(10)
    gallery.set("old.png", old)
    gallery.set("fresh.png", fresh)

    removed = gallery.discard_where(lambda _k, e: e.timestamp_ns < 5)
    assert removed == 1
    assert old.descriptor.released
    assert gallery.get("old.png") is None

    assert gallery.clear() == 1
    assert fresh.descriptor.released
    assert len(gallery) == 0


def test_concurrent_writers_keep_every_key():
    gallery = FaceGallery()

    def writer(prefix: str) -> None:
        for idx in range(200):
            gallery.set(f"{prefix}_{idx}.png", _entry(idx))
            gallery.snapshot()

    threads = [threading.Thread(target=writer, args=(name,)) for name in ("a", "b", "c")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(gallery) == 600
