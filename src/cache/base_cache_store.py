# src/cache/base_cache_store.py — v2
"""Abstract cache store interface.

Backends raise on storage errors; soft-failure semantics live in
cache/prompt_cache.py.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from invoicex.cache.models import CacheEntry


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    @abstractmethod
    async def get(self, fingerprint: str) -> CacheEntry | None:
        """Retrieve cache entry by fingerprint."""

    @abstractmethod
    async def upsert(
        self,
        fingerprint: str,
        prompt: str,
        result: str,
        token_usage: str,
    ) -> None:
        """Insert a new entry or overwrite result/usage of the existing one.

        Must be a single atomic operation: two callers missing concurrently
        on the same fingerprint both succeed and leave exactly one entry.
        """

    @abstractmethod
    async def delete(self, fingerprint: str) -> None:
        """Remove cache entry."""

    @abstractmethod
    async def purge(self) -> int:
        """Remove every entry. Returns the number of entries removed."""

    @abstractmethod
    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries."""

    def close(self) -> None:
        """Release backend resources."""
