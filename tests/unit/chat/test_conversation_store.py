# tests/unit/chat/test_conversation_store.py — v1
"""Tests for chat/conversation_store.py."""

from __future__ import annotations

import pytest

from invoicex.chat.conversation_store import ConversationStore


@pytest.fixture
def store(tmp_path):
    s = ConversationStore(tmp_path / "chat" / "invoicex.db")
    yield s
    s.close()


class TestConversationStore:
    @pytest.mark.asyncio
    async def test_unknown_session_is_empty(self, store):
        state = await store.get_session("s-1")
        assert state.session_id == "s-1"
        assert state.messages == []
        assert state.current_invoice_number is None

    @pytest.mark.asyncio
    async def test_append_keeps_order(self, store):
        await store.append("s-1", "user", "hi")
        await store.append("s-1", "assistant", "hello")
        await store.append("s-2", "user", "other session")
        state = await store.get_session("s-1")
        assert [(m.role, m.content) for m in state.messages] == [
            ("user", "hi"), ("assistant", "hello"),
        ]

    @pytest.mark.asyncio
    async def test_current_invoice(self, store):
        await store.set_current_invoice("s-1", "INV-7")
        assert (await store.get_session("s-1")).current_invoice_number == "INV-7"
        await store.set_current_invoice("s-1", None)
        assert (await store.get_session("s-1")).current_invoice_number is None

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.append("s-1", "user", "hi")
        assert await store.delete("s-1") is True
        assert (await store.get_session("s-1")).messages == []
        assert await store.delete("s-1") is False

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "c.db"
        first = ConversationStore(path)
        await first.append("s", "user", "remember me")
        first.close()
        second = ConversationStore(path)
        try:
            assert (await second.get_session("s")).messages[0].content == "remember me"
        finally:
            second.close()
