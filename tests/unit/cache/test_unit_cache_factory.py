# tests/unit/cache/test_cache_factory.py — v2
"""Tests for cache/cache_factory.py."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from invoicex.cache.cache_factory import create_cache_store, create_prompt_cache
from invoicex.cache.sqlite_store import SqliteCacheStore
from invoicex.config.settings import Settings


def _settings(tmp_path, **kwargs) -> Settings:
    return Settings(_env_file=None, database_path=tmp_path / "db.sqlite", **kwargs)


class TestCreateCacheStore:
    def test_sqlite_default(self, tmp_path):
        store = create_cache_store(_settings(tmp_path))
        try:
            assert isinstance(store, SqliteCacheStore)
            assert (tmp_path / "db.sqlite").exists()
        finally:
            store.close()

    def test_redis_requires_url(self, tmp_path):
        settings = _settings(tmp_path)
        settings.cache_backend = "redis"  # bypass model validation
        with pytest.raises(ValueError, match="CACHE_REDIS_URL"):
            create_cache_store(settings)

    def test_redis_backend(self, tmp_path):
        settings = _settings(tmp_path, cache_backend="redis", cache_redis_url="redis://cache:6379/0")
        fake_module = MagicMock()
        with patch.dict("sys.modules", {"redis": fake_module}):
            store = create_cache_store(settings)
        fake_module.Redis.from_url.assert_called_once_with(
            "redis://cache:6379/0", decode_responses=True
        )
        assert type(store).__name__ == "RedisCacheStore"


class TestCreatePromptCache:
    def test_enabled_flag_from_settings(self, tmp_path):
        cache = create_prompt_cache(_settings(tmp_path, enable_prompt_cache=False))
        try:
            assert cache.enabled is False
        finally:
            cache.close()

    def test_enabled_by_default(self, tmp_path):
        cache = create_prompt_cache(_settings(tmp_path))
        try:
            assert cache.enabled is True
        finally:
            cache.close()
