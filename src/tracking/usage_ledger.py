# src/tracking/usage_ledger.py — v1
"""Append-only ledger of extraction usage records.

Stored in the token_usage table of the shared SQLite database. Records are
never updated; delete_all is the only destructive operation (administrative).
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from invoicex.tracking.models import UsageRecord

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS token_usage (
    id TEXT PRIMARY KEY,
    prompt_tokens INTEGER NOT NULL,
    completion_tokens INTEGER NOT NULL,
    total_tokens INTEGER NOT NULL,
    cost REAL NOT NULL,
    timestamp TEXT NOT NULL,
    operation TEXT NOT NULL,
    invoice_id TEXT,
    cached INTEGER NOT NULL DEFAULT 0,
    cache_key TEXT NOT NULL DEFAULT '',
    cache_hit INTEGER NOT NULL DEFAULT 0,
    original_prompt_tokens INTEGER NOT NULL DEFAULT 0,
    original_completion_tokens INTEGER NOT NULL DEFAULT 0,
    original_total_tokens INTEGER NOT NULL DEFAULT 0,
    original_cost REAL NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_token_usage_timestamp ON token_usage(timestamp);
CREATE INDEX IF NOT EXISTS idx_token_usage_operation ON token_usage(operation);
"""

_COLUMNS = (
    "id", "prompt_tokens", "completion_tokens", "total_tokens", "cost",
    "timestamp", "operation", "invoice_id", "cached", "cache_key", "cache_hit",
    "original_prompt_tokens", "original_completion_tokens",
    "original_total_tokens", "original_cost",
)


def new_record_id() -> str:
    return uuid.uuid4().hex


class BaseUsageLedger(ABC):
    """Durable, append-only usage ledger."""

    @abstractmethod
    async def append(self, record: UsageRecord) -> None:
        """Persist one record."""

    @abstractmethod
    async def list_records(
        self,
        operation: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[UsageRecord]:
        """Records in timestamp order, optionally filtered."""

    @abstractmethod
    async def delete_all(self) -> int:
        """Remove every record. Returns the number removed."""

    def close(self) -> None:
        """Release backend resources."""


class SqliteUsageLedger(BaseUsageLedger):
    """SQLite-backed usage ledger."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def append(self, record: UsageRecord) -> None:
        placeholders = ", ".join("?" for _ in _COLUMNS)
        with self._conn:
            self._conn.execute(
                f"INSERT INTO token_usage ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                (
                    record.id,
                    record.prompt_tokens,
                    record.completion_tokens,
                    record.total_tokens,
                    record.cost,
                    _to_utc(record.timestamp).isoformat(),
                    record.operation,
                    record.invoice_id,
                    int(record.cached),
                    record.cache_key,
                    int(record.cache_hit),
                    record.original_prompt_tokens,
                    record.original_completion_tokens,
                    record.original_total_tokens,
                    record.original_cost,
                ),
            )

    async def list_records(
        self,
        operation: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[UsageRecord]:
        clauses: list[str] = []
        params: list[object] = []
        if operation is not None:
            clauses.append("operation = ?")
            params.append(operation)
        if since is not None:
            clauses.append("timestamp >= ?")
            params.append(_to_utc(since).isoformat())
        if until is not None:
            clauses.append("timestamp < ?")
            params.append(_to_utc(until).isoformat())

        query = f"SELECT {', '.join(_COLUMNS)} FROM token_usage"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY timestamp"

        cursor = self._conn.execute(query, params)
        return [_row_to_record(row) for row in cursor.fetchall()]

    async def delete_all(self) -> int:
        with self._conn:
            cursor = self._conn.execute("DELETE FROM token_usage")
        logger.info("Deleted %d token usage records", cursor.rowcount)
        return cursor.rowcount

    def close(self) -> None:
        self._conn.close()


def _to_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _row_to_record(row: tuple) -> UsageRecord:
    data = dict(zip(_COLUMNS, row))
    data["timestamp"] = datetime.fromisoformat(data["timestamp"])
    data["cached"] = bool(data["cached"])
    data["cache_hit"] = bool(data["cache_hit"])
    return UsageRecord(**data)
