# tests/unit/cache/test_prompt_cache.py — v2
"""Tests for cache/prompt_cache.py — enable flag and soft failure."""

from __future__ import annotations

import logging
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from invoicex.cache.prompt_cache import PromptCache
from invoicex.cache.sqlite_store import SqliteCacheStore
from invoicex.core.models import ExtractedResult


@pytest.fixture
def sqlite_store(tmp_path):
    s = SqliteCacheStore(tmp_path / "cache.db")
    yield s
    s.close()


class TestEnabled:
    @pytest.mark.asyncio
    async def test_lookup_after_upsert(self, sqlite_store):
        cache = PromptCache(sqlite_store)
        assert await cache.upsert("fp", "p", "r", "u") is True
        entry = await cache.lookup("fp")
        assert entry is not None and entry.result == "r"

    @pytest.mark.asyncio
    async def test_miss(self, sqlite_store):
        assert await PromptCache(sqlite_store).lookup("nope") is None

    @pytest.mark.asyncio
    async def test_entries_and_purge(self, sqlite_store):
        cache = PromptCache(sqlite_store)
        await cache.upsert("fp1", "p", "r", "u")
        await cache.upsert("fp2", "p", "r", "u")
        assert len(await cache.entries()) == 2
        assert await cache.purge() == 2


class TestDisabled:
    @pytest.mark.asyncio
    async def test_lookup_never_touches_store(self):
        store = MagicMock()
        store.get = AsyncMock()
        cache = PromptCache(store, enabled=False)
        assert cache.enabled is False
        assert await cache.lookup("fp") is None
        store.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_upsert_is_noop(self, sqlite_store):
        cache = PromptCache(sqlite_store, enabled=False)
        assert await cache.upsert("fp", "p", "r", "u") is False
        assert await sqlite_store.get("fp") is None


class TestSoftFailure:
    @pytest.mark.asyncio
    async def test_lookup_error_is_miss(self, failing_store, caplog):
        cache = PromptCache(failing_store)
        with caplog.at_level(logging.WARNING, logger="invoicex.cache.prompt_cache"):
            assert await cache.lookup("fp-broken") is None
        assert "fp-broken" in caplog.text

    @pytest.mark.asyncio
    async def test_upsert_error_swallowed(self, failing_store):
        cache = PromptCache(failing_store)
        assert await cache.upsert("fp", "p", "r", "u") is False

    @pytest.mark.asyncio
    async def test_admin_errors_propagate(self, failing_store):
        cache = PromptCache(failing_store)
        with pytest.raises(RuntimeError):
            await cache.purge()
        with pytest.raises(RuntimeError):
            await cache.entries()


class TestFindInvoice:
    @staticmethod
    def _result(number: str, reference: str) -> str:
        return ExtractedResult(
            customer_name="Globex Inc",
            vendor_name="Acme Corp",
            invoice_number=number,
            invoice_date=date(2024, 3, 1),
            amount=4500,
            currency="USD",
            confidence=0.9,
            extraction_method="text",
            original_file_url=reference,
        ).fields_json()

    @pytest.mark.asyncio
    async def test_match_under_other_fingerprint(self, sqlite_store):
        cache = PromptCache(sqlite_store)
        await cache.upsert("fp1", "p", self._result("INV-7", "a.pdf"), "u")
        await cache.upsert("fp2", "p", self._result("INV-8", "b.pdf"), "u")

        found = await cache.find_invoice("INV-7", exclude_fingerprint="fp9")
        assert found is not None and found.original_file_url == "a.pdf"
        assert await cache.find_invoice("INV-7", exclude_fingerprint="fp1") is None
        assert await cache.find_invoice("INV-9", exclude_fingerprint="fp9") is None

    @pytest.mark.asyncio
    async def test_undecodable_entries_skipped(self, sqlite_store):
        cache = PromptCache(sqlite_store)
        await cache.upsert("bad", "p", "{not json", "u")
        await cache.upsert("good", "p", self._result("INV-7", "a.pdf"), "u")
        found = await cache.find_invoice("INV-7", exclude_fingerprint="new")
        assert found is not None

    @pytest.mark.asyncio
    async def test_disabled_finds_nothing(self, sqlite_store):
        await sqlite_store.upsert("fp1", "p", self._result("INV-7", "a.pdf"), "u")
        cache = PromptCache(sqlite_store, enabled=False)
        assert await cache.find_invoice("INV-7", exclude_fingerprint="x") is None

    @pytest.mark.asyncio
    async def test_listing_error_finds_nothing(self, caplog):
        store = MagicMock()
        store.list_entries = AsyncMock(side_effect=RuntimeError("down"))
        with caplog.at_level(logging.WARNING):
            assert await PromptCache(store).find_invoice("INV-7", "x") is None
        assert "Duplicate check skipped" in caplog.text
