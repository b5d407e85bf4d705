"""
SQLite storage backend.

Uses aiosqlite for async SQLite access. One file per install,
~/.shopbell/state.db by default.
"""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

from shopbell.core.errors import StorageError
from shopbell.store.base import StorageProvider

logger = logging.getLogger(__name__)


class SQLiteStorage(StorageProvider):
    """
    SQLite-based key-value storage.

    Usage:
        storage = SQLiteStorage("~/.shopbell/state.db")
        await storage.initialize()

        await storage.set("prefs/alert_volume", b"0.8")
        value = await storage.get("prefs/alert_volume")  # b"0.8"
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open the database and create the kv table."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._db = await aiosqlite.connect(str(self._db_path))
            await self._db.execute("PRAGMA journal_mode=WAL")
            await self._db.execute("PRAGMA synchronous=NORMAL")
            await self._db.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value BLOB NOT NULL,
                    updated_at REAL NOT NULL DEFAULT (CAST(strftime('%s','now') AS REAL))
                )
                """
            )
            await self._db.commit()
            logger.debug(f"SQLite storage initialized at {self._db_path}")
        except Exception as e:
            raise StorageError(f"Failed to initialize SQLite at {self._db_path}: {e}")

    async def _ensure_db(self) -> aiosqlite.Connection:
        if self._db is None:
            await self.initialize()
        return self._db  # type: ignore[return-value]

    async def get(self, key: str) -> bytes | None:
        db = await self._ensure_db()
        try:
            async with db.execute("SELECT value FROM kv WHERE key = ?", (key,)) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else None
        except Exception as e:
            raise StorageError(f"Failed to get key '{key}': {e}")

    async def set(self, key: str, value: bytes) -> None:
        db = await self._ensure_db()
        try:
            await db.execute(
                """
                INSERT INTO kv (key, value, updated_at) VALUES (?, ?, unixepoch('now'))
                ON CONFLICT(key) DO UPDATE SET value = ?, updated_at = unixepoch('now')
                """,
                (key, value, value),
            )
            await db.commit()
        except Exception as e:
            raise StorageError(f"Failed to set key '{key}': {e}")

    async def delete(self, key: str) -> bool:
        db = await self._ensure_db()
        try:
            cursor = await db.execute("DELETE FROM kv WHERE key = ?", (key,))
            await db.commit()
            return cursor.rowcount > 0
        except Exception as e:
            raise StorageError(f"Failed to delete key '{key}': {e}")

    async def list_keys(self, prefix: str = "") -> list[str]:
        db = await self._ensure_db()
        try:
            if prefix:
                query = "SELECT key FROM kv WHERE substr(key, 1, ?) = ? ORDER BY key"
                params: tuple = (len(prefix), prefix)
            else:
                query = "SELECT key FROM kv ORDER BY key"
                params = ()
            async with db.execute(query, params) as cursor:
                rows = await cursor.fetchall()
            return [row[0] for row in rows]
        except Exception as e:
            raise StorageError(f"Failed to list keys with prefix '{prefix}': {e}")

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None
