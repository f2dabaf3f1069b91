"""Guild-scoped settings storage.

Defines the key-value contract the dispatch engine reads and writes
(enablement flags, command prefix, moderator roles, allowed channels)
and two implementations: an in-memory store and a SQLite store that
keeps a read cache and writes every change through immediately.

Reads are synchronous and served from memory. Writes are coroutines;
the SQLite store runs them in a worker thread so a busy database never
stalls the event loop.

Values are JSON-serializable. A guild_id of None addresses the global
scope (direct messages), stored under a key no real guild ID can take.
"""

import asyncio
import json
import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import structlog

from .exceptions import StorageError

logger = structlog.get_logger("guildwire.storage")

GLOBAL_SCOPE = "@global"

_MISSING = object()


def _scope(guild_id: Optional[str]) -> str:
    return GLOBAL_SCOPE if guild_id is None else str(guild_id)


class SettingsStore(ABC):
    """Key-value settings keyed by guild and an opaque string key.

    Reads are synchronous. Writes are awaited and atomic per key.
    """

    async def initialize(self) -> None:
        """Open the backing store. No-op by default."""

    async def close(self) -> None:
        """Release the backing store. No-op by default."""

    @abstractmethod
    def get(self, guild_id: Optional[str], key: str, default: Any = None) -> Any:
        ...

    @abstractmethod
    async def set(self, guild_id: Optional[str], key: str, value: Any) -> None:
        ...

    @abstractmethod
    async def delete(self, guild_id: Optional[str], key: str) -> bool:
        """Remove a key. Returns True if it existed."""
        ...

    @abstractmethod
    async def clear(self, guild_id: Optional[str]) -> None:
        """Remove every key of a guild."""
        ...

    def get_flag(self, guild_id: Optional[str], key: str, default: bool = True) -> bool:
        value = self.get(guild_id, key, default)
        return bool(value)

    async def set_flag(self, guild_id: Optional[str], key: str, value: bool) -> None:
        await self.set(guild_id, key, bool(value))


class MemorySettingsStore(SettingsStore):
    """Process-local store. Not durable; used for tests and ephemeral bots."""

    def __init__(self):
        self._data: Dict[Tuple[str, str], Any] = {}

    def get(self, guild_id, key, default=None):
        return self._data.get((_scope(guild_id), key), default)

    async def set(self, guild_id, key, value):
        self._data[(_scope(guild_id), key)] = value

    async def delete(self, guild_id, key):
        return self._data.pop((_scope(guild_id), key), _MISSING) is not _MISSING

    async def clear(self, guild_id):
        scope = _scope(guild_id)
        for k in [k for k in self._data if k[0] == scope]:
            del self._data[k]


class SQLiteSettingsStore(SettingsStore):
    """SQLite-backed durable store with an in-memory read cache.

    The whole table is loaded into the cache by initialize(); reads
    never touch the database. Each write is a single-row upsert
    committed in a worker thread, and the cache changes only once the
    commit succeeded.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._cache: Dict[Tuple[str, str], Any] = {}
        # Serializes commit + cache update across worker threads.
        self._write_lock = threading.Lock()

    async def initialize(self) -> None:
        """Open the database, create the schema and load the cache."""
        await asyncio.to_thread(self._initialize_sync)

    def _initialize_sync(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA busy_timeout=5000")
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS settings (
                    guild TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    PRIMARY KEY (guild, key)
                )
            """)
            self._conn.commit()
            rows = self._conn.execute("SELECT guild, key, value FROM settings").fetchall()
        except sqlite3.Error as e:
            raise StorageError(
                "Failed to open settings database",
                operation="initialize",
                path=str(self.db_path),
                error=str(e),
            ) from e

        self._cache.clear()
        for row in rows:
            try:
                self._cache[(row["guild"], row["key"])] = json.loads(row["value"])
            except json.JSONDecodeError:
                logger.warning("setting_value_invalid_json", guild=row["guild"], key=row["key"])
        logger.info("settings_loaded", path=str(self.db_path), entries=len(self._cache))

    async def close(self) -> None:
        if self._conn is not None:
            conn, self._conn = self._conn, None
            await asyncio.to_thread(conn.close)
            logger.info("settings_closed")

    def _write_sync(self, operation: str, sql: str, params: tuple, apply) -> Any:
        """Commit one statement, then apply the matching cache change."""
        with self._write_lock:
            conn = self._conn
            if conn is None:
                raise StorageError("Settings database is not initialized", operation=operation)
            try:
                with conn:
                    conn.execute(sql, params)
            except sqlite3.Error as e:
                raise StorageError(
                    "Settings write failed", operation=operation, error=str(e)
                ) from e
            return apply()

    def get(self, guild_id, key, default=None):
        return self._cache.get((_scope(guild_id), key), default)

    async def set(self, guild_id, key, value):
        scope = _scope(guild_id)
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(
                "Setting value is not JSON-serializable", operation="set", key=key
            ) from e

        def apply():
            self._cache[(scope, key)] = value

        await asyncio.to_thread(
            self._write_sync,
            "set",
            "INSERT INTO settings (guild, key, value) VALUES (?, ?, ?) "
            "ON CONFLICT(guild, key) DO UPDATE SET value = excluded.value",
            (scope, key, encoded),
            apply,
        )
        logger.debug("setting_saved", guild=scope, key=key)

    async def delete(self, guild_id, key):
        scope = _scope(guild_id)
        existed = await asyncio.to_thread(
            self._write_sync,
            "delete",
            "DELETE FROM settings WHERE guild = ? AND key = ?",
            (scope, key),
            lambda: self._cache.pop((scope, key), _MISSING) is not _MISSING,
        )
        if existed:
            logger.debug("setting_deleted", guild=scope, key=key)
        return existed

    async def clear(self, guild_id):
        scope = _scope(guild_id)

        def apply():
            for k in [k for k in self._cache if k[0] == scope]:
                del self._cache[k]

        await asyncio.to_thread(
            self._write_sync, "clear", "DELETE FROM settings WHERE guild = ?", (scope,), apply
        )
        logger.info("settings_cleared", guild=scope)
