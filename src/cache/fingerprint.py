# src/cache/fingerprint.py — v3
"""Content fingerprinting for the prompt cache.

Text inputs hash their normalized text, so documents that differ only in
incidental whitespace share a cache entry. Image inputs hash the reference
string: image bytes are never re-read for hashing, which means two URLs
serving byte-identical images get distinct fingerprints.
"""

from __future__ import annotations

import hashlib
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from invoicex.core.models import ExtractionInput

_WHITESPACE_RUN = re.compile(r"\s+")


def compute_fingerprint(extraction_input: ExtractionInput) -> str:
    """Return the SHA-256 hex digest used as the cache key.

    Args:
        extraction_input: Text or image input produced by the orchestrator.

    Returns:
        64-character lowercase hex digest.
    """
    if extraction_input.kind == "image":
        return hash_prompt(extraction_input.reference)
    return hash_prompt(normalize_text(extraction_input.normalized_text))


def hash_prompt(prompt: str) -> str:
    """SHA-256 of the UTF-8 encoded prompt."""
    return hashlib.sha256(prompt.encode("utf-8")).hexdigest()


def normalize_text(text: str) -> str:
    """Normalize line endings, collapse whitespace runs, strip the ends.

    Idempotent: normalize_text(normalize_text(t)) == normalize_text(t).
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return _WHITESPACE_RUN.sub(" ", text).strip()
