"""I/O helpers shared across the CLI entrypoint and pipeline modules."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from facecache.types import NANOS_PER_MILLI, NANOS_PER_SECOND

LOGGER = logging.getLogger("facecache.io")

PathLike = Union[str, Path]


def ensure_dir(path: Path) -> Path:
    """Create directory (and parents) if it does not exist."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return a dictionary."""
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping at the top of {path}, got {type(data).__name__}")
    LOGGER.debug("Loaded YAML config %s -> keys=%s", path, list(data.keys()))
    return data


def setup_logging(level: int = logging.INFO) -> None:
    """Configure application logging if not already configured."""
    if logging.getLogger().handlers:
        logging.getLogger().setLevel(level)
        return
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def capture_stamp(timestamp_ns: int) -> str:
    """Render `<YYYYMMDD_HH-MM-SS>_<mmm>` for a nanosecond timestamp (local time)."""
    seconds = timestamp_ns // NANOS_PER_SECOND
    millis = (timestamp_ns // NANOS_PER_MILLI) % 1000
    return f"{datetime.fromtimestamp(seconds):%Y%m%d_%H-%M-%S}_{millis:03d}"


def face_crop_path(output_dir: PathLike, timestamp_ns: int, face_idx: int) -> str:
    """Gallery key and on-disk path of an admitted face crop."""
    return f"{output_dir}/{capture_stamp(timestamp_ns)}_{face_idx}.png"


def frame_snapshot_path(output_dir: PathLike, timestamp_ns: int) -> str:
    return f"{output_dir}/{capture_stamp(timestamp_ns)}.png"
