from pathlib import Path

import cv2
import numpy as np

from facecache.recognition.gallery import FaceGallery
from facecache.recognition.phash import PerceptualHasher
from facecache.recognition.seed import iter_seed_images, load_seed_gallery
from facecache.types import Tenure


class _BrightRegionDetector:
    """Reports the whole image as a face unless it is completely black."""

    def __init__(self):
        self.shapes = []

    def detect(self, image):
        self.shapes.append(image.shape)
        if not image.any():
            return []
        height, width = image.shape[:2]
        return [(0, 0, width, height), (0, 0, width // 2, height // 2)]


def _write(path: Path, value: int) -> None:
    rng = np.random.default_rng(value)
    image = rng.integers(1, 256, size=(32, 32, 3), dtype=np.uint8) if value else np.zeros((32, 32, 3), np.uint8)
    assert cv2.imwrite(str(path), image)


def test_iter_seed_images_filters_by_lowercase_suffix(tmp_path: Path):
    _write(tmp_path / "alice.png", 1)
    _write(tmp_path / "bob.jpg", 2)
    _write(tmp_path / "carol.JPG", 3)
    (tmp_path / "notes.txt").write_text("not an image")
    (tmp_path / "folder.png").mkdir()

    names = [p.name for p in iter_seed_images(tmp_path)]

    assert names == ["alice.png", "bob.jpg"]


def test_load_seed_gallery_adds_permanent_entries(tmp_path: Path):
    _write(tmp_path / "alice.png", 1)
    _write(tmp_path / "bob.jpeg", 2)
    _write(tmp_path / "blank.png", 0)
    detector = _BrightRegionDetector()
    gallery = FaceGallery()

    loaded = load_seed_gallery(tmp_path, gallery, detector, PerceptualHasher())

    assert loaded == 2
    assert sorted(key for key, _ in gallery.snapshot()) == ["alice.png", "bob.jpeg"]
    for _key, entry in gallery.snapshot():
        assert entry.tenure is Tenure.PERMANENT
        assert entry.timestamp_ns == 0
    assert all(len(shape) == 2 for shape in detector.shapes), "seeds are decoded as grayscale"


def test_seed_uses_first_rectangle_only(tmp_path: Path):
    _write(tmp_path / "alice.png", 5)
    gallery = FaceGallery()
    hasher = PerceptualHasher()

    load_seed_gallery(tmp_path, gallery, _BrightRegionDetector(), hasher)

    gray = cv2.imread(str(tmp_path / "alice.png"), cv2.IMREAD_GRAYSCALE)
    expected = hasher.compute(gray)
    assert hasher.compare(gallery.get("alice.png").descriptor, expected) == 1.0


def test_undecodable_seed_is_skipped(tmp_path: Path):
    (tmp_path / "broken.png").write_bytes(b"not a png")
    gallery = FaceGallery()

    assert load_seed_gallery(tmp_path, gallery, _BrightRegionDetector(), PerceptualHasher()) == 0
    assert len(gallery) == 0


def test_missing_seed_directory_is_not_fatal(tmp_path: Path):
    gallery = FaceGallery()

    loaded = load_seed_gallery(tmp_path / "nope", gallery, _BrightRegionDetector(), PerceptualHasher())

    assert loaded == 0
    assert len(gallery) == 0
