# src/cache/prompt_cache.py — v2
"""Prompt cache front-end used by the extraction pipeline.

Wraps a BaseCacheStore with the enable switch and soft-failure policy:
a failing lookup is a miss, a failing upsert is ignored, a failing duplicate
check finds nothing. Cache trouble never
blocks an extraction. Administrative operations (purge, entries) propagate
errors to the operator.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from invoicex.cache.base_cache_store import BaseCacheStore
from invoicex.cache.models import CacheEntry
from invoicex.core.models import ExtractedResult

logger = logging.getLogger(__name__)


class PromptCache:
    """Fingerprint-keyed extraction cache with a fixed enable flag."""

    def __init__(self, store: BaseCacheStore, enabled: bool = True) -> None:
        self._store = store
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def lookup(self, fingerprint: str) -> CacheEntry | None:
        """Return the cached entry, or None on miss, when disabled, or on error."""
        if not self._enabled:
            return None
        try:
            entry = await self._store.get(fingerprint)
        except Exception:
            logger.warning(
                "Cache lookup failed for %s, treating as miss",
                fingerprint, exc_info=True,
            )
            return None
        if entry is not None:
            logger.debug("Cache hit for %s", fingerprint)
        return entry

    async def upsert(
        self,
        fingerprint: str,
        prompt: str,
        result: str,
        token_usage: str,
    ) -> bool:
        """Best-effort write. Returns True if the entry was stored."""
        if not self._enabled:
            return False
        try:
            await self._store.upsert(fingerprint, prompt, result, token_usage)
        except Exception:
            logger.warning(
                "Cache upsert failed for %s, result not cached",
                fingerprint, exc_info=True,
            )
            return False
        logger.info("Saved extraction to cache with hash %s", fingerprint)
        return True

    async def find_invoice(
        self, invoice_number: str, exclude_fingerprint: str
    ) -> ExtractedResult | None:
        """Stored result with the same invoice number under another fingerprint.

        Returns None when disabled or on a store error.
        """
        if not self._enabled:
            return None
        try:
            entries = await self._store.list_entries()
        except Exception:
            logger.warning("Duplicate check skipped, cache listing failed", exc_info=True)
            return None
        for entry in entries:
            if entry.fingerprint == exclude_fingerprint:
                continue
            try:
                stored = entry.decode_result()
            except ValidationError:
                continue
            if stored.invoice_number == invoice_number:
                return stored
        return None

    async def purge(self) -> int:
        """Delete every entry (administrative)."""
        removed = await self._store.purge()
        logger.info("Purged %d prompt cache entries", removed)
        return removed

    async def entries(self) -> list[CacheEntry]:
        """List every entry (administrative)."""
        return await self._store.list_entries()

    def close(self) -> None:
        self._store.close()
