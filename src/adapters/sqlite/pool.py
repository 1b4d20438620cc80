"""
Bounded SQLite connection pool.

Connections are opened lazily up to ``max_connections``. A checkout waits at
most ``acquire_timeout`` seconds for a free slot and then raises
PoolTimeoutError. Connections are shared across request threads, so they are
opened with ``check_same_thread=False``; a connection is only ever used by
the thread that currently holds it.
"""

from __future__ import annotations

import logging
import queue
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from src.core.errors import PoolTimeoutError

logger = logging.getLogger(__name__)


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


class SQLiteConnectionPool:
    def __init__(
        self,
        db_path: str,
        max_connections: int = 5,
        acquire_timeout: float = 2.0,
        busy_timeout_ms: int = 5000,
    ) -> None:
        if max_connections < 1:
            raise ValueError("max_connections must be at least 1")
        self.db_path = db_path
        self.max_connections = max_connections
        self.acquire_timeout = acquire_timeout
        self.busy_timeout_ms = busy_timeout_ms

        self._slots = threading.BoundedSemaphore(max_connections)
        self._idle: queue.LifoQueue[sqlite3.Connection] = queue.LifoQueue()
        self._closed = False

    def _connect(self) -> sqlite3.Connection:
        # isolation_level=None: transactions are opened explicitly by the unit of work
        conn = sqlite3.connect(
            self.db_path,
            timeout=self.busy_timeout_ms / 1000,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute("PRAGMA journal_mode = WAL;")
        return conn

    def acquire(self) -> sqlite3.Connection:
        """Check out a connection, waiting up to ``acquire_timeout`` seconds."""
        if self._closed:
            raise PoolTimeoutError("Connection pool is closed.")
        if not self._slots.acquire(timeout=self.acquire_timeout):
            raise PoolTimeoutError(
                f"Timed out after {self.acquire_timeout}s waiting for a database connection."
            )
        try:
            return self._idle.get_nowait()
        except queue.Empty:
            pass
        try:
            return self._connect()
        except sqlite3.Error as e:
            self._slots.release()
            raise PoolTimeoutError("Failed to open a database connection.") from e

    def release(self, conn: sqlite3.Connection) -> None:
        """Return a connection to the pool, discarding any open transaction."""
        try:
            if conn.in_transaction:
                conn.rollback()
            if self._closed:
                conn.close()
            else:
                self._idle.put(conn)
        finally:
            self._slots.release()

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = self.acquire()
        try:
            yield conn
        finally:
            self.release(conn)

    def close(self) -> None:
        """Close idle connections; connections still checked out close on release."""
        self._closed = True
        while True:
            try:
                conn = self._idle.get_nowait()
            except queue.Empty:
                break
            conn.close()
        logger.debug("Connection pool for %s closed", self.db_path)
