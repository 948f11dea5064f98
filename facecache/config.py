"""Capture configuration: dataclass defaults, YAML loading and CLI overrides."""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from facecache.io_utils import load_yaml
from facecache.recognition.matcher import DEFAULT_SIMILARITY_THRESHOLD
from facecache.viz.overlay import DEFAULT_BOX_COLOR

LOGGER = logging.getLogger("facecache.config")


@dataclass
class CaptureConfig:
    similarity_threshold: int = DEFAULT_SIMILARITY_THRESHOLD
    eviction_period_sec: float = 60.0
    eviction_capacity: int = 100
    eviction_age_sec: float = 300.0
    min_eyes_required: int = 2
    key_wait_ms: int = 10
    camera_index: int = 0
    seed_dir: str = "./data"
    output_dir: str = "./img"
    face_cascade: str = "./haarcascade_frontalface_alt2.xml"
    eye_cascade: str = "./haarcascade_eye_tree_eyeglasses.xml"
    face_scale_factor: float = 1.1
    face_min_neighbors: int = 3
    eye_scale_factor: float = 1.1
    eye_min_neighbors: int = 3
    hash_size: int = 8
    window_name: str = "Face Detect"
    show_window: bool = True
    box_color: Tuple[int, int, int] = DEFAULT_BOX_COLOR
    box_thickness: int = 2
    # CSV of admitted crops written into output_dir on shutdown; None disables
    manifest_name: Optional[str] = "captures.csv"
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not 0 <= int(self.similarity_threshold) <= 100:
            raise ValueError(f"similarity_threshold must be in [0, 100], got {self.similarity_threshold}")
        if self.eviction_period_sec <= 0:
            raise ValueError("eviction_period_sec must be positive")
        if self.eviction_capacity < 0 or self.eviction_age_sec < 0:
            raise ValueError("eviction_capacity and eviction_age_sec must be non-negative")
        if self.min_eyes_required < 0:
            raise ValueError("min_eyes_required must be non-negative")
        if self.key_wait_ms < 1:
            raise ValueError("key_wait_ms must be at least 1")

    @property
    def manifest_path(self) -> Optional[Path]:
        if not self.manifest_name:
            return None
        return Path(self.output_dir) / self.manifest_name

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CaptureConfig":
        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            if key in known:
                kwargs[key] = value
            else:
                extra[key] = value
        if extra:
            LOGGER.warning("Ignoring unknown capture config keys: %s", sorted(extra))
        if "box_color" in kwargs and kwargs["box_color"] is not None:
            kwargs["box_color"] = tuple(int(v) for v in kwargs["box_color"])
        return cls(extra=extra, **kwargs)


def load_capture_config(path: Optional[Path]) -> CaptureConfig:
    """Load config from YAML; a missing file falls back to defaults."""
    if path is None:
        return CaptureConfig()
    if not path.exists():
        LOGGER.info("Config %s not found; using defaults", path)
        return CaptureConfig()
    return CaptureConfig.from_dict(load_yaml(path))


def apply_cli_overrides(config: CaptureConfig, args: argparse.Namespace) -> CaptureConfig:
    """Return a copy of ``config`` with every non-None matching CLI attribute applied."""
    overrides: Dict[str, Any] = {}
    for f in fields(config):
        if f.name == "extra":
            continue
        value = getattr(args, f.name, None)
        if value is not None:
            overrides[f.name] = value
    if overrides:
        LOGGER.debug("CLI overrides: %s", overrides)
    return replace(config, **overrides)
