"""SQLite database connection and schema management."""

from __future__ import annotations

import asyncio
import os
import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from anyio import to_thread

if TYPE_CHECKING:
    from collections.abc import Callable

logger = structlog.get_logger()

_DB_FILE_PERMISSIONS = 0o600

DEFAULT_STARTING_BALANCE = 1000

_SCHEMA_SQL = f"""\
CREATE TABLE IF NOT EXISTS accounts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT NOT NULL,
    display_name TEXT NOT NULL,
    password_hash TEXT NOT NULL,
    balance INTEGER NOT NULL DEFAULT {DEFAULT_STARTING_BALANCE},
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_accounts_email
    ON accounts (email COLLATE NOCASE);

CREATE UNIQUE INDEX IF NOT EXISTS idx_accounts_display_name
    ON accounts (display_name);
"""


class Database:
    """SQLite database wrapper owning the single shared connection.

    The connection is opened with ``check_same_thread=False`` because ledger
    and repository calls run on worker threads; callers serialize access.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._conn: sqlite3.Connection | None = None
        self._lock = asyncio.Lock()

    @property
    def path(self) -> str:
        return self._path

    @property
    def connection(self) -> sqlite3.Connection:
        """Return the active connection or raise if disconnected."""
        if self._conn is None:
            raise RuntimeError("Database is not connected")
        return self._conn

    def connect(self) -> None:
        """Open the database, apply pragmas, create schema, and harden file permissions."""
        if self._path != ":memory:":
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(self._path, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA busy_timeout=5000")
        self._conn.executescript(_SCHEMA_SQL)
        logger.info("database ready", path=self._path)

        self._harden_permissions()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    async def run[T](self, work: Callable[[sqlite3.Connection], T]) -> T:
        """Run a blocking unit of work on a worker thread, one unit at a time."""
        conn = self.connection
        async with self._lock:
            return await to_thread.run_sync(work, conn)

    def _harden_permissions(self) -> None:
        """Restrict the DB file and its WAL/SHM siblings to the owner (POSIX, best effort)."""
        if os.name != "posix" or self._path == ":memory:":  # pragma: no cover
            return
        for suffix in ("", "-wal", "-shm"):
            p = Path(self._path + suffix)
            if p.exists():
                try:
                    p.chmod(_DB_FILE_PERMISSIONS)
                except OSError:
                    logger.warning("could not set file permissions", path=str(p))
