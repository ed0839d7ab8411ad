# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite, the default).

Uses stdlib sqlite3 — no external dependency. The prompt_hash column carries
a UNIQUE constraint and writes go through INSERT ... ON CONFLICT DO UPDATE,
so concurrent misses on one fingerprint never raise a duplicate-key error.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path

from invoicex.cache.base_cache_store import BaseCacheStore
from invoicex.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS prompt_cache (
    id TEXT PRIMARY KEY,
    prompt_hash TEXT NOT NULL UNIQUE,
    prompt TEXT NOT NULL,
    result TEXT NOT NULL,
    token_usage TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

_UPSERT = """
INSERT INTO prompt_cache
    (id, prompt_hash, prompt, result, token_usage, created_at, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(prompt_hash) DO UPDATE SET
    result = excluded.result,
    token_usage = excluded.token_usage,
    updated_at = excluded.updated_at
"""

_COLUMNS = "id, prompt_hash, prompt, result, token_usage, created_at, updated_at"


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed prompt cache."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(self, fingerprint: str) -> CacheEntry | None:
        """Retrieve cache entry by fingerprint."""
        cursor = self._conn.execute(
            f"SELECT {_COLUMNS} FROM prompt_cache WHERE prompt_hash = ? LIMIT 1",
            (fingerprint,),
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return _row_to_entry(row)

    async def upsert(
        self,
        fingerprint: str,
        prompt: str,
        result: str,
        token_usage: str,
    ) -> None:
        """Insert or update in one statement; id and created_at survive updates."""
        now = datetime.now(timezone.utc).isoformat()
        with self._conn:
            self._conn.execute(
                _UPSERT,
                (uuid.uuid4().hex, fingerprint, prompt, result, token_usage, now, now),
            )
        logger.debug("Upserted cache entry %s", fingerprint)

    async def delete(self, fingerprint: str) -> None:
        """Remove a cache entry."""
        with self._conn:
            self._conn.execute(
                "DELETE FROM prompt_cache WHERE prompt_hash = ?", (fingerprint,)
            )

    async def purge(self) -> int:
        """Remove every entry."""
        with self._conn:
            cursor = self._conn.execute("DELETE FROM prompt_cache")
        return cursor.rowcount

    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries, oldest first."""
        cursor = self._conn.execute(
            f"SELECT {_COLUMNS} FROM prompt_cache ORDER BY created_at"
        )
        return [_row_to_entry(row) for row in cursor.fetchall()]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()


def _row_to_entry(row: tuple) -> CacheEntry:
    return CacheEntry(
        id=row[0],
        fingerprint=row[1],
        prompt=row[2],
        result=row[3],
        token_usage=row[4],
        created_at=datetime.fromisoformat(row[5]),
        updated_at=datetime.fromisoformat(row[6]),
    )
