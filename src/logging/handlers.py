# src/logging/handlers.py — v2
"""Size-based rotating file handler for the optional log file."""

from __future__ import annotations

import logging
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

_SIZE_UNITS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}


def _parse_size(size_str: str) -> int:
    """Parse a size like '10MB', '512 KB' or '2048' (bytes) into bytes."""
    match = re.match(r"^(\d+)\s*(B|KB|MB|GB)?$", size_str.strip(), re.IGNORECASE)
    if not match:
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    unit = (match.group(2) or "B").upper()
    return int(match.group(1)) * _SIZE_UNITS[unit]


def create_rotating_handler(
    log_file: str,
    rotation: str = "10MB",
    retention: int = 30,
    level: int = logging.NOTSET,
) -> RotatingFileHandler:
    """Create a rotating file handler, creating the parent directory.

    Args:
        log_file: Path to log file.
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of backup files to keep.
        level: Handler level (NOTSET defers to the logger).
    """
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=_parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler
