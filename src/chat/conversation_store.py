# src/chat/conversation_store.py — v1
"""Durable per-session conversation state for the invoice assistant.

Each session owns its transcript and the invoice number currently under
discussion. Sessions are independent; nothing is shared between them.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field

from invoicex.llm.models import Message

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS chat_session (
    session_id TEXT PRIMARY KEY,
    current_invoice_number TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS chat_message (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL,
    role TEXT NOT NULL,
    content TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_chat_message_session ON chat_message(session_id, id);
"""


class ConversationState(BaseModel):
    """Transcript and tracked invoice for one session."""

    session_id: str
    messages: list[Message] = Field(default_factory=list)
    current_invoice_number: str | None = None


class ConversationStore:
    """SQLite-backed conversation sessions."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get_session(self, session_id: str) -> ConversationState:
        """Load a session; unknown ids yield an empty state."""
        row = self._conn.execute(
            "SELECT current_invoice_number FROM chat_session WHERE session_id = ?",
            (session_id,),
        ).fetchone()
        messages = [
            Message(role=role, content=content)
            for role, content in self._conn.execute(
                "SELECT role, content FROM chat_message WHERE session_id = ? ORDER BY id",
                (session_id,),
            ).fetchall()
        ]
        return ConversationState(
            session_id=session_id,
            messages=messages,
            current_invoice_number=row[0] if row else None,
        )

    async def append(self, session_id: str, role: str, content: str) -> None:
        now = _now()
        with self._conn:
            self._touch(session_id, now)
            self._conn.execute(
                "INSERT INTO chat_message (session_id, role, content, created_at) "
                "VALUES (?, ?, ?, ?)",
                (session_id, role, content, now),
            )

    async def set_current_invoice(self, session_id: str, invoice_number: str | None) -> None:
        now = _now()
        with self._conn:
            self._touch(session_id, now)
            self._conn.execute(
                "UPDATE chat_session SET current_invoice_number = ? WHERE session_id = ?",
                (invoice_number, session_id),
            )

    async def delete(self, session_id: str) -> bool:
        """Drop a session and its transcript. Returns True if it existed."""
        with self._conn:
            self._conn.execute("DELETE FROM chat_message WHERE session_id = ?", (session_id,))
            cursor = self._conn.execute(
                "DELETE FROM chat_session WHERE session_id = ?", (session_id,)
            )
        if cursor.rowcount:
            logger.info("Deleted conversation session %s", session_id)
        return cursor.rowcount > 0

    def close(self) -> None:
        self._conn.close()

    def _touch(self, session_id: str, now: str) -> None:
        self._conn.execute(
            "INSERT INTO chat_session (session_id, created_at, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(session_id) DO UPDATE SET updated_at = excluded.updated_at",
            (session_id, now, now),
        )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
