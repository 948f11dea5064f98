#!/usr/bin/env python3
"""CLI for the live face capture and deduplication loop."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from facecache.capture.session import CaptureSession
from facecache.config import CaptureConfig, apply_cli_overrides, load_capture_config
from facecache.detectors.haar import DeviceUnavailableError
from facecache.io_utils import setup_logging


LOGGER = logging.getLogger("scripts.capture")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Capture and deduplicate faces from a live camera")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("configs/capture.yaml"),
        help="Capture configuration YAML (missing file falls back to defaults)",
    )
    parser.add_argument("--camera-index", dest="camera_index", type=int, default=None)
    parser.add_argument(
        "--seed-dir",
        dest="seed_dir",
        type=str,
        default=None,
        help="Directory of reference face images loaded as permanent entries",
    )
    parser.add_argument(
        "--output-dir",
        dest="output_dir",
        type=str,
        default=None,
        help="Directory where face crops and frame snapshots are written",
    )
    parser.add_argument("--face-cascade", dest="face_cascade", type=str, default=None)
    parser.add_argument("--eye-cascade", dest="eye_cascade", type=str, default=None)
    parser.add_argument(
        "--similarity-threshold",
        dest="similarity_threshold",
        type=int,
        default=None,
        help="Integer percent; faces scoring above this collide with an existing entry",
    )
    parser.add_argument("--eviction-period-sec", dest="eviction_period_sec", type=float, default=None)
    parser.add_argument("--eviction-capacity", dest="eviction_capacity", type=int, default=None)
    parser.add_argument("--eviction-age-sec", dest="eviction_age_sec", type=float, default=None)
    parser.add_argument("--min-eyes", dest="min_eyes_required", type=int, default=None)
    parser.add_argument("--key-wait-ms", dest="key_wait_ms", type=int, default=None)
    parser.add_argument(
        "--no-window",
        dest="show_window",
        action="store_const",
        const=False,
        default=None,
        help="Run headless (no preview window; stop with Ctrl+C or --max-frames)",
    )
    parser.add_argument(
        "--max-frames",
        type=int,
        default=None,
        help="Stop after this many non-empty frames",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CaptureConfig:
    """Resolve configuration with CLI flags taking precedence over YAML values."""
    config = load_capture_config(args.config)
    return apply_cli_overrides(config, args)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = build_config(args)
    except ValueError as exc:
        raise SystemExit(f"Invalid capture configuration: {exc}") from exc

    try:
        session = CaptureSession.open(config)
    except DeviceUnavailableError as exc:
        raise SystemExit(str(exc)) from exc

    try:
        frames = session.run(max_frames=args.max_frames)
    except KeyboardInterrupt:
        LOGGER.info("Interrupted; shutting down")
        session.shutdown()
        return
    LOGGER.info("Processed %d frames", frames)


if __name__ == "__main__":
    main()
