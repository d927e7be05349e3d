"""Transfer shapes exchanged with callers of the user registry."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from .models import User, UserChanges


def _require_text(value: str, message: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError(message)
    return stripped


def _strip_email(value: object, message: str) -> object:
    if isinstance(value, str):
        return _require_text(value, message)
    return value


class UserDTO(BaseModel):
    """External representation of a user record.

    Every field is optional so the same shape can describe partial input;
    responses built by :func:`user_to_dto` always populate all of them.
    """

    id: Optional[int] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    active: Optional[bool] = None
    created_at: Optional[int] = Field(default=None, description="Milliseconds since the Unix epoch")
    updated_at: Optional[int] = Field(default=None, description="Milliseconds since the Unix epoch")


class CreateUserRequest(BaseModel):
    name: str = Field(..., max_length=255)
    email: EmailStr
    phone: str = Field(..., max_length=64)

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, value: str) -> str:
        return _require_text(value, "Name is required")

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value: object) -> object:
        return _strip_email(value, "Email is required")

    @field_validator("phone")
    @classmethod
    def _normalize_phone(cls, value: str) -> str:
        return _require_text(value, "Phone is required")


class UpdateUserRequest(BaseModel):
    """Partial update; omitted fields and explicit ``null`` leave values unchanged."""

    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=64)
    active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _require_text(value, "Name must not be blank")

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value: object) -> object:
        return _strip_email(value, "Email must not be blank")

    @field_validator("phone")
    @classmethod
    def _normalize_phone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _require_text(value, "Phone must not be blank")

    def to_changes(self) -> UserChanges:
        return UserChanges(
            name=self.name,
            email=self.email,
            phone=self.phone,
            active=self.active,
        )


def user_to_dto(user: User) -> UserDTO:
    return UserDTO(
        id=user.id,
        name=user.name,
        email=user.email,
        phone=user.phone,
        active=user.active,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


__all__ = ["CreateUserRequest", "UpdateUserRequest", "UserDTO", "user_to_dto"]
