"""Domain models for the user registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class User:
    """Represents a user record stored by the persistence layer.

    ``id``, ``created_at`` and ``updated_at`` stay ``None`` until the record
    has been saved for the first time. Timestamps are milliseconds since the
    Unix epoch.
    """

    name: str
    email: str
    phone: str
    active: bool = True
    id: Optional[int] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


@dataclass(frozen=True)
class UserChanges:
    """Partial update for a user record; ``None`` leaves a field unchanged."""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    active: Optional[bool] = None


__all__ = ["User", "UserChanges"]
