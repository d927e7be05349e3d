"""Error types raised by the user registry."""

from __future__ import annotations


class UserRegistryError(Exception):
    """Base class for user registry failures."""


class DuplicateEmailError(UserRegistryError):
    """Raised when a create or update would leave two users sharing an email."""

    def __init__(self, email: str) -> None:
        super().__init__(f"Email already exists: {email}")
        self.email = email


class UserNotFoundError(UserRegistryError):
    """Raised when no user record matches the requested identifier."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User not found with id: {user_id}")
        self.user_id = user_id


class StorageError(UserRegistryError):
    """Raised by the persistence layer when the underlying store fails."""


__all__ = [
    "DuplicateEmailError",
    "StorageError",
    "UserNotFoundError",
    "UserRegistryError",
]
