"""Key/value storage for the configuration record.

The configuration path only needs ``get`` and ``put`` of a single JSON
document. Storage is a Protocol so any backend with those two coroutines
plugs in; two implementations ship here:

- InMemoryStorage: process-local, for tests and embedding.
- SQLiteStorage: file-backed via aiosqlite, used by the CLI.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import aiosqlite

DEFAULT_DB_PATH = "oktaauth.db"
ENTRIES_TABLE = "entries"


@dataclass(frozen=True)
class StorageEntry:
    """One stored value; ``value`` is the raw JSON document."""

    key: str
    value: bytes

    @classmethod
    def from_json(cls, key: str, document: str) -> StorageEntry:
        return cls(key=key, value=document.encode("utf-8"))

    def decode_json(self) -> Any:
        return json.loads(self.value)


@runtime_checkable
class Storage(Protocol):
    """Protocol for configuration storage backends."""

    async def get(self, key: str) -> StorageEntry | None:
        """Return the entry stored under ``key``, or None."""
        ...

    async def put(self, entry: StorageEntry) -> None:
        """Create or replace ``entry``."""
        ...


class InMemoryStorage:
    """In-memory Storage; thread-safe, contents lost on exit."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, bytes] = {}

    async def get(self, key: str) -> StorageEntry | None:
        with self._lock:
            value = self._entries.get(key)
        if value is None:
            return None
        return StorageEntry(key=key, value=value)

    async def put(self, entry: StorageEntry) -> None:
        with self._lock:
            self._entries[entry.key] = entry.value


class SQLiteStorage:
    """SQLite-backed Storage; entries persist across process restarts."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def _ensure_table(self, conn: aiosqlite.Connection) -> None:
        await conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {ENTRIES_TABLE} (
                key TEXT PRIMARY KEY,
                value BLOB NOT NULL
            )
            """
        )
        await conn.commit()

    async def get(self, key: str) -> StorageEntry | None:
        async with aiosqlite.connect(self._db_path) as conn:
            await self._ensure_table(conn)
            cursor = await conn.execute(
                f"SELECT value FROM {ENTRIES_TABLE} WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        return StorageEntry(key=key, value=bytes(row[0]))

    async def put(self, entry: StorageEntry) -> None:
        async with aiosqlite.connect(self._db_path) as conn:
            await self._ensure_table(conn)
            await conn.execute(
                f"INSERT OR REPLACE INTO {ENTRIES_TABLE} (key, value) VALUES (?, ?)",
                (entry.key, entry.value),
            )
            await conn.commit()
