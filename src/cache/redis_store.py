# src/cache/redis_store.py — v2
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for distributed/multi-instance deployments. Each entry is a hash
keyed by fingerprint; upsert runs as one MULTI/EXEC transaction where HSETNX
keeps id/created_at/prompt from the first writer and HSET overwrites the rest.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from invoicex.cache.base_cache_store import BaseCacheStore
from invoicex.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_KEY_PREFIX = "invoicex:prompt_cache:"
_INDEX_KEY = "invoicex:prompt_cache:__index__"


class RedisCacheStore(BaseCacheStore):
    """Redis-backed cache store for distributed deployments."""

    def __init__(self, redis_url: str) -> None:
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis.Redis.from_url(redis_url, decode_responses=True)

    async def get(self, fingerprint: str) -> CacheEntry | None:
        """Retrieve cache entry by fingerprint."""
        data = self._client.hgetall(f"{_KEY_PREFIX}{fingerprint}")
        if not data:
            return None
        return CacheEntry(
            id=data["id"],
            fingerprint=fingerprint,
            prompt=data.get("prompt", ""),
            result=data["result"],
            token_usage=data["token_usage"],
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )

    async def upsert(
        self,
        fingerprint: str,
        prompt: str,
        result: str,
        token_usage: str,
    ) -> None:
        """Atomic insert-or-update."""
        key = f"{_KEY_PREFIX}{fingerprint}"
        now = datetime.now(timezone.utc).isoformat()
        pipe = self._client.pipeline(transaction=True)
        pipe.hsetnx(key, "id", uuid.uuid4().hex)
        pipe.hsetnx(key, "created_at", now)
        pipe.hsetnx(key, "prompt", prompt)
        pipe.hset(
            key,
            mapping={"result": result, "token_usage": token_usage, "updated_at": now},
        )
        pipe.sadd(_INDEX_KEY, fingerprint)
        pipe.execute()

    async def delete(self, fingerprint: str) -> None:
        """Remove a cache entry."""
        self._client.delete(f"{_KEY_PREFIX}{fingerprint}")
        self._client.srem(_INDEX_KEY, fingerprint)

    async def purge(self) -> int:
        """Remove every indexed entry."""
        fingerprints = self._client.smembers(_INDEX_KEY)
        if not fingerprints:
            return 0
        self._client.delete(*[f"{_KEY_PREFIX}{fp}" for fp in fingerprints], _INDEX_KEY)
        return len(fingerprints)

    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries."""
        entries: list[CacheEntry] = []
        for fingerprint in self._client.smembers(_INDEX_KEY):
            entry = await self.get(fingerprint)
            if entry is not None:
                entries.append(entry)
        return entries

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()
