"""Core utilities for the user registry service."""

from __future__ import annotations

from typing import Any

from .database import Database, resolve_database_path
from .errors import DuplicateEmailError, StorageError, UserNotFoundError, UserRegistryError
from .manager import UserManager, build_manager
from .models import User, UserChanges


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the HTTP application."""

    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "Database",
    "DuplicateEmailError",
    "StorageError",
    "User",
    "UserChanges",
    "UserManager",
    "UserNotFoundError",
    "UserRegistryError",
    "build_manager",
    "create_app",
    "resolve_database_path",
]
