# src/logging/logger.py — v3
"""Package logging setup with JSON and text formatters.

Console output always; a rotating file as well when LOG_FILE is set.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from invoicex.logging.context import get_context

if TYPE_CHECKING:
    from invoicex.config.settings import Settings

_ROOT = "invoicex"

# Third-party loggers that are noisy at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "openai", "anthropic")


def _timestamp(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JsonFormatter(logging.Formatter):
    """One JSON object per line; request context under "context"."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": _timestamp(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context_dict = get_context().as_dict()
        if context_dict:
            log_entry["context"] = context_dict

        # Structured payload passed as extra={"data": {...}}
        data = getattr(record, "data", None)
        if data:
            log_entry["data"] = data

        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter for development."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        parts = [
            _timestamp(record).strftime("%Y-%m-%d %H:%M:%S"),
            f"[{record.levelname:8s}]",
            record.name,
        ]
        if ctx.document_id:
            parts.append(f"[{ctx.document_id}]")
        elif ctx.reference:
            parts.append(f"[{ctx.reference}]")
        if ctx.fingerprint:
            parts.append(f"<{ctx.fingerprint[:12]}>")
        if ctx.step:
            parts.append(f"({ctx.step})")
        parts.append(f"— {record.getMessage()}")
        line = " ".join(parts)
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> None:
    """Configure the package root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: Output format ("json" or "text").
        log_file: Path to log file (None = console only).
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
    """
    root_logger = logging.getLogger(_ROOT)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.propagate = False

    # Re-init replaces handlers instead of stacking them
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter: logging.Formatter = JsonFormatter() if log_format == "json" else TextFormatter()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        from invoicex.logging.handlers import create_rotating_handler

        file_handler = create_rotating_handler(
            log_file, rotation=rotation, retention=retention
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging_from_settings(settings: Settings, level: str | None = None) -> None:
    """setup_logging() driven by Settings; level overrides LOG_LEVEL."""
    setup_logging(
        level=level or settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
