# src/cache/cache_factory.py — v3
"""Factory for cache store instantiation."""

from __future__ import annotations

from invoicex.cache.base_cache_store import BaseCacheStore
from invoicex.cache.prompt_cache import PromptCache
from invoicex.config.settings import Settings


def create_cache_store(settings: Settings) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings.

    Returns:
        Configured BaseCacheStore implementation.
    """
    backend = settings.cache_backend

    if backend == "sqlite":
        from invoicex.cache.sqlite_store import SqliteCacheStore
        return SqliteCacheStore(db_path=settings.resolved_database_path)

    if backend == "redis":
        from invoicex.cache.redis_store import RedisCacheStore
        if not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisCacheStore(redis_url=settings.cache_redis_url)

    raise ValueError(f"Unsupported cache backend: {backend!r}")


def create_prompt_cache(settings: Settings) -> PromptCache:
    """Configured backend wrapped with the ENABLE_PROMPT_CACHE switch."""
    return PromptCache(
        create_cache_store(settings), enabled=settings.enable_prompt_cache
    )
