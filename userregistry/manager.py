"""Business rules for creating, reading, updating and deleting users."""

from __future__ import annotations

import logging
from contextlib import nullcontext
from dataclasses import replace
from typing import Callable, ContextManager, List, Optional

from .errors import DuplicateEmailError, UserNotFoundError
from .models import User, UserChanges
from .database import Database
from .repository import SQLiteUserRepository, UserRepository
from .schemas import CreateUserRequest, UserDTO, user_to_dto

logger = logging.getLogger("userregistry.manager")

TransactionFactory = Callable[[], ContextManager[object]]


class UserManager:
    """Enforce email uniqueness and existence checks around user records.

    The manager keeps no state of its own. ``transaction`` wraps the
    check-then-save sequences of :meth:`create_user` and :meth:`update_user`;
    it must roll back when the block raises.
    """

    def __init__(
        self,
        repository: UserRepository,
        *,
        transaction: Optional[TransactionFactory] = None,
    ) -> None:
        self._repository = repository
        self._transaction: TransactionFactory = transaction or nullcontext

    def create_user(self, request: CreateUserRequest) -> UserDTO:
        with self._transaction():
            if self._repository.find_by_email(request.email) is not None:
                logger.warning("Rejected new user with existing email %s", request.email)
                raise DuplicateEmailError(request.email)

            user = User(
                name=request.name,
                email=request.email,
                phone=request.phone,
                active=True,
            )
            saved = self._repository.save(user)

        logger.info("Created user %s <%s>", saved.id, saved.email)
        return user_to_dto(saved)

    def get_user_by_id(self, user_id: int) -> UserDTO:
        logger.debug("Loading user %s", user_id)
        return user_to_dto(self._require_user(user_id))

    def get_all_users(self) -> List[UserDTO]:
        return [user_to_dto(user) for user in self._repository.find_all()]

    def get_active_users(self) -> List[UserDTO]:
        return [user_to_dto(user) for user in self._repository.find_by_active(True)]

    def update_user(self, user_id: int, changes: UserChanges) -> UserDTO:
        """Apply the present fields of ``changes`` and save the record once.

        A new email is checked for uniqueness before anything is saved; an
        email equal to the current one is left alone without a lookup.
        """

        with self._transaction():
            user = self._require_user(user_id)

            email = user.email
            if changes.email is not None and changes.email != user.email:
                if self._repository.find_by_email(changes.email) is not None:
                    logger.warning(
                        "Rejected email change for user %s: %s already exists",
                        user_id,
                        changes.email,
                    )
                    raise DuplicateEmailError(changes.email)
                email = changes.email

            updated = replace(
                user,
                name=changes.name if changes.name is not None else user.name,
                email=email,
                phone=changes.phone if changes.phone is not None else user.phone,
                active=changes.active if changes.active is not None else user.active,
            )
            saved = self._repository.save(updated)

        logger.info("Updated user %s", saved.id)
        return user_to_dto(saved)

    def delete_user(self, user_id: int) -> None:
        if not self._repository.exists_by_id(user_id):
            raise UserNotFoundError(user_id)
        self._repository.delete_by_id(user_id)
        logger.info("Deleted user %s", user_id)

    def _require_user(self, user_id: int) -> User:
        user = self._repository.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user


def build_manager(database: Database) -> UserManager:
    """Wire a :class:`UserManager` to SQLite storage with transaction scopes."""

    return UserManager(SQLiteUserRepository(database), transaction=database.transaction)


__all__ = ["TransactionFactory", "UserManager", "build_manager"]
