"""SQLite connection layer with the sqlite-vec extension."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import sqlite_vec


class Database:
    """Shared SQLite database with sqlite-vec vector functions loaded.

    Every logical unit of work opens its own connection via ``connection()``
    (or ``connect()``) and wraps its writes in ``with conn:`` so that one
    file, commit or conversation turn commits or rolls back on its own.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Store the database path. Call connect() to open a connection.

        Args:
            db_path: Path to the SQLite database file (created if missing).
        """
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        """Open a connection, load sqlite-vec, and return the connection."""
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        conn.enable_load_extension(True)
        sqlite_vec.load(conn)
        conn.enable_load_extension(False)
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a fresh connection and close it afterwards (thread-safe)."""
        conn = self.connect()
        try:
            yield conn
        finally:
            conn.close()

    def __enter__(self) -> sqlite3.Connection:
        """Open the database and return the connection (context manager support)."""
        self._conn = self.connect()
        return self._conn

    def __exit__(self, *args: object) -> None:
        """Close the connection when leaving the context manager."""
        if self._conn:
            self._conn.close()
            self._conn = None


def is_missing_table(exc: BaseException) -> bool:
    """True if *exc* is SQLite's "no such table" error (optional feature absent)."""
    return isinstance(exc, sqlite3.OperationalError) and str(exc).startswith("no such table")
