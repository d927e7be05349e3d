"""SQLite connection handling and transaction scope for user records."""
from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .errors import StorageError

_BUSY_TIMEOUT_SECONDS = 30.0


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "users.sqlite3").resolve(strict=False)


class Database:
    """Simple wrapper around SQLite for persisting user records.

    Connections run in autocommit mode. :meth:`transaction` opens an explicit
    transaction and exposes its connection to every :meth:`connection` call
    made on the same thread until the scope exits.
    """

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path
        self._local = threading.local()

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self._path,
            timeout=_BUSY_TIMEOUT_SECONDS,
            check_same_thread=False,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        return conn

    def _active_connection(self) -> Optional[sqlite3.Connection]:
        return getattr(self._local, "connection", None)

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self.connection() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    phone TEXT NOT NULL,
                    active INTEGER NOT NULL DEFAULT 1,
                    created_at INTEGER NOT NULL,
                    updated_at INTEGER NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_users_active ON users(active);
                """
            )

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Yield the current transaction's connection or a short-lived one."""

        active = self._active_connection()
        if active is not None:
            yield active
            return

        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the enclosed block in one transaction, rolling back on error.

        The write lock is taken up front so concurrent scopes queue on the
        busy timeout instead of failing when a read lock cannot be upgraded.
        Nested scopes join the outermost transaction.
        """

        active = self._active_connection()
        if active is not None:
            yield active
            return

        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.DatabaseError as exc:
            conn.close()
            raise StorageError("Failed to start user registry transaction") from exc
        self._local.connection = conn
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        else:
            try:
                conn.execute("COMMIT")
            except sqlite3.DatabaseError as exc:
                raise StorageError("Failed to commit user registry transaction") from exc
        finally:
            self._local.connection = None
            conn.close()


__all__ = ["Database", "resolve_database_path"]
