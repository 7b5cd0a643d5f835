"""SQLite batch sink for durable storage of flushed log entries."""

import asyncio
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime

import aiosqlite

from loftlog.core.encoding.ndjson import entry_to_json
from loftlog.core.models import LogCategory, LogEntry, LogLevel, format_timestamp

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"

_LOGS_SCHEMA = """
CREATE TABLE IF NOT EXISTS logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp TEXT NOT NULL,
    level TEXT NOT NULL,
    category TEXT NOT NULL,
    message TEXT NOT NULL,
    request_id TEXT,
    entry TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_logs_timestamp ON logs(timestamp);
CREATE INDEX IF NOT EXISTS idx_logs_level_timestamp ON logs(level, timestamp);
CREATE INDEX IF NOT EXISTS idx_logs_category_timestamp ON logs(category, timestamp);
"""

_INSERT_LOG = """
INSERT INTO logs (timestamp, level, category, message, request_id, entry)
VALUES (?, ?, ?, ?, ?, ?)
"""

_SELECT_LOGS = """
SELECT entry
FROM logs
WHERE timestamp > ?
  AND (? IS NULL OR level = ?)
  AND (? IS NULL OR category = ?)
ORDER BY timestamp ASC, id ASC
"""

_COUNT_LOGS = """
SELECT COUNT(*) FROM logs
"""

_COUNT_LOGS_BY_LEVEL = """
SELECT COUNT(*) FROM logs WHERE level = ?
"""

_DELETE_LOGS_BEFORE = """
DELETE FROM logs WHERE timestamp < ?
"""

_CLEAR_LOGS = """
DELETE FROM logs
"""


def _entry_row(entry: LogEntry) -> tuple[str, str, str, str, str | None, str]:
    return (
        entry.timestamp,
        entry.level.value,
        entry.category.value,
        entry.message,
        entry.context.request_id if entry.context else None,
        entry_to_json(entry),
    )


def _decode_entry(raw: str) -> LogEntry | None:
    """Rebuild a stored entry, or None if the row is unreadable."""
    try:
        return LogEntry.from_dict(json.loads(raw))
    except (ValueError, KeyError, TypeError):
        logger.warning("Skipping unreadable stored log entry")
        return None


class SQLiteLogSink:
    """SQLite implementation of BatchSinkPort.

    Stores flushed entries in a SQLite database using aiosqlite, one row
    per entry with the full entry kept as JSON. File databases use WAL
    mode and a short-lived connection per operation; the schema is created
    by the first connection.

    A :memory: database only lives as long as its connection, so the sink
    keeps one open until :meth:`close`. That connection is bound to the
    event loop that first used the sink.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._schema_ready = False
        self._memory_conn: aiosqlite.Connection | None = None
        self._memory_lock: asyncio.Lock | None = None

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[aiosqlite.Connection]:
        if self._db_path == MEMORY_DB:
            yield await self._memory_connection()
            return
        async with aiosqlite.connect(self._db_path) as db:
            if not self._schema_ready:
                await db.execute("PRAGMA journal_mode=WAL")
                await db.executescript(_LOGS_SCHEMA)
                self._schema_ready = True
            yield db

    async def _memory_connection(self) -> aiosqlite.Connection:
        if self._memory_conn is not None:
            return self._memory_conn
        # Created lazily: the lock must belong to the running loop.
        if self._memory_lock is None:
            self._memory_lock = asyncio.Lock()
        async with self._memory_lock:
            if self._memory_conn is None:
                db = await aiosqlite.connect(MEMORY_DB)
                await db.executescript(_LOGS_SCHEMA)
                self._memory_conn = db
        return self._memory_conn

    async def send(self, entries: Sequence[LogEntry]) -> bool:
        """Insert a batch of entries in a single transaction."""
        rows = [_entry_row(entry) for entry in entries]
        async with self._connection() as db:
            await db.executemany(_INSERT_LOG, rows)
            await db.commit()
        return True

    async def read(
        self,
        since: datetime | None = None,
        level: LogLevel | str | None = None,
        category: LogCategory | str | None = None,
    ) -> AsyncIterable[LogEntry]:
        """Read stored entries, oldest first.

        Args:
            since: Only entries created strictly after this moment.
            level: Only entries with this level.
            category: Only entries with this category.
        """
        since_value = format_timestamp(since) if since is not None else ""
        level_value = LogLevel(level).value if level is not None else None
        category_value = LogCategory(category).value if category is not None else None
        params = (since_value, level_value, level_value, category_value, category_value)
        async with self._connection() as db:
            async with db.execute(_SELECT_LOGS, params) as cursor:
                async for (raw,) in cursor:
                    entry = _decode_entry(raw)
                    if entry is not None:
                        yield entry

    async def _scalar(self, query: str, params: tuple[str, ...] = ()) -> int:
        async with self._connection() as db:
            async with db.execute(query, params) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def count(self) -> int:
        """Return total number of stored entries."""
        return await self._scalar(_COUNT_LOGS)

    async def count_by_level(self, level: LogLevel | str) -> int:
        return await self._scalar(_COUNT_LOGS_BY_LEVEL, (LogLevel(level).value,))

    async def delete_before(self, moment: datetime) -> int:
        """Delete entries created before the given moment.

        Returns:
            Number of deleted entries.
        """
        async with self._connection() as db:
            cursor = await db.execute(_DELETE_LOGS_BEFORE, (format_timestamp(moment),))
            deleted = cursor.rowcount
            await db.commit()
            return deleted

    async def clear(self) -> None:
        """Delete every stored entry."""
        async with self._connection() as db:
            await db.execute(_CLEAR_LOGS)
            await db.commit()

    async def close(self) -> None:
        """Close the :memory: connection; its entries are discarded."""
        if self._memory_conn is not None:
            await self._memory_conn.close()
            self._memory_conn = None
        self._memory_lock = None
