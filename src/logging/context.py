# src/logging/context.py — v2
"""Contextual logging support — attach reference, document_id, fingerprint
and pipeline step to log records.

Context variables are per asyncio task, so concurrent process_document calls
never see each other's values.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_reference: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "reference", default=None
)
_document_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "document_id", default=None
)
_fingerprint: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "fingerprint", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    reference: str | None = None
    document_id: str | None = None
    fingerprint: str | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        reference=_reference.get(),
        document_id=_document_id.get(),
        fingerprint=_fingerprint.get(),
        step=_step.get(),
    )


def set_document_context(reference: str, document_id: str | None = None) -> None:
    """Set document-level context (called once per process_document)."""
    _reference.set(reference)
    _document_id.set(document_id)
    _fingerprint.set(None)
    _step.set(None)


def set_fingerprint(fingerprint: str) -> None:
    _fingerprint.set(fingerprint)


def set_step(step: str | None) -> None:
    """Set the current pipeline step (classify, validate, cache, extract, ...)."""
    _step.set(step)


def clear_context() -> None:
    """Reset all context variables."""
    _reference.set(None)
    _document_id.set(None)
    _fingerprint.set(None)
    _step.set(None)
