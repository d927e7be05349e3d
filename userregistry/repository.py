"""Persistence contract for user records and its SQLite implementation."""
from __future__ import annotations

import sqlite3
import time
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator, List, Optional, Protocol

from .database import Database
from .errors import StorageError
from .models import User

_SQLITE_MIN_INTEGER = -(2**63)
_SQLITE_MAX_INTEGER = 2**63 - 1


class UserRepository(Protocol):
    """Storage primitives consumed by :class:`~userregistry.manager.UserManager`."""

    def find_by_id(self, user_id: int) -> Optional[User]: ...

    def find_by_email(self, email: str) -> Optional[User]: ...

    def find_all(self) -> List[User]: ...

    def find_by_active(self, active: bool) -> List[User]: ...

    def exists_by_id(self, user_id: int) -> bool: ...

    def save(self, user: User) -> User: ...

    def delete_by_id(self, user_id: int) -> None: ...


def _current_timestamp_ms() -> int:
    return time.time_ns() // 1_000_000


def _storable_id(user_id: int) -> bool:
    return _SQLITE_MIN_INTEGER <= user_id <= _SQLITE_MAX_INTEGER


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.DatabaseError as exc:
        raise StorageError(f"Failed to {action}: {exc}") from exc


class SQLiteUserRepository:
    """Stores user records in the ``users`` table of a :class:`Database`."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def find_by_id(self, user_id: int) -> Optional[User]:
        if not _storable_id(user_id):
            return None
        with _storage_errors("load user"), self._database.connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def find_by_email(self, email: str) -> Optional[User]:
        with _storage_errors("look up user by email"), self._database.connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def find_all(self) -> List[User]:
        with _storage_errors("list users"), self._database.connection() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY id").fetchall()
        return [self._row_to_user(row) for row in rows]

    def find_by_active(self, active: bool) -> List[User]:
        with _storage_errors("list users"), self._database.connection() as conn:
            rows = conn.execute(
                "SELECT * FROM users WHERE active = ? ORDER BY id",
                (int(bool(active)),),
            ).fetchall()
        return [self._row_to_user(row) for row in rows]

    def exists_by_id(self, user_id: int) -> bool:
        if not _storable_id(user_id):
            return False
        with _storage_errors("check user"), self._database.connection() as conn:
            row = conn.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone()
        return row is not None

    def save(self, user: User) -> User:
        """Insert a new record or overwrite an existing one.

        New records receive their identifier and both timestamps here;
        existing records only get a fresh ``updated_at``.
        """

        now = _current_timestamp_ms()
        if user.id is None:
            with _storage_errors("create user"), self._database.connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO users (name, email, phone, active, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (user.name, user.email, user.phone, int(bool(user.active)), now, now),
                )
                user_id = cursor.lastrowid
            return replace(user, id=user_id, created_at=now, updated_at=now)

        with _storage_errors("update user"), self._database.connection() as conn:
            cursor = conn.execute(
                """
                UPDATE users
                   SET name = ?, email = ?, phone = ?, active = ?, updated_at = ?
                 WHERE id = ?
                """,
                (user.name, user.email, user.phone, int(bool(user.active)), now, user.id),
            )
            if cursor.rowcount == 0:
                raise StorageError(f"User {user.id} no longer exists")
            row = conn.execute("SELECT created_at FROM users WHERE id = ?", (user.id,)).fetchone()
        return replace(user, created_at=int(row["created_at"]), updated_at=now)

    def delete_by_id(self, user_id: int) -> None:
        if not _storable_id(user_id):
            return
        with _storage_errors("delete user"), self._database.connection() as conn:
            conn.execute("DELETE FROM users WHERE id = ?", (user_id,))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=int(row["id"]),
            name=str(row["name"]),
            email=str(row["email"]),
            phone=str(row["phone"]),
            active=bool(row["active"]),
            created_at=int(row["created_at"]),
            updated_at=int(row["updated_at"]),
        )


__all__ = ["SQLiteUserRepository", "UserRepository"]
