"""FastAPI application that exposes the user registry over HTTP."""
from __future__ import annotations

import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, FastAPI, Response, status
from fastapi.responses import JSONResponse

from .config import Settings, load_settings
from .database import Database
from .errors import DuplicateEmailError, StorageError, UserNotFoundError
from .manager import UserManager, build_manager
from .schemas import CreateUserRequest, UpdateUserRequest, UserDTO

logger = logging.getLogger("userregistry.api")


def create_app(
    *,
    database: Database | None = None,
    manager: UserManager | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application for the user registry."""

    if manager is None:
        if database is None:
            if settings is None:
                settings = load_settings()
            database = Database(settings.database_path)
            database.initialize()
        manager = build_manager(database)

    app = FastAPI(
        title="User Registry",
        description="Create, read, update and delete user records",
        version="1.0.0",
    )
    app.state.database = database
    app.state.manager = manager

    def get_manager() -> UserManager:
        return manager

    @app.get("/health")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    router = APIRouter(prefix="/api/users")

    @router.post("", response_model=UserDTO, status_code=status.HTTP_201_CREATED)
    async def create_user(
        payload: CreateUserRequest,
        users: UserManager = Depends(get_manager),
    ) -> UserDTO:
        return users.create_user(payload)

    @router.get("", response_model=List[UserDTO])
    async def list_users(users: UserManager = Depends(get_manager)) -> List[UserDTO]:
        return users.get_all_users()

    @router.get("/active", response_model=List[UserDTO])
    async def list_active_users(users: UserManager = Depends(get_manager)) -> List[UserDTO]:
        return users.get_active_users()

    @router.get("/{user_id}", response_model=UserDTO)
    async def read_user(user_id: int, users: UserManager = Depends(get_manager)) -> UserDTO:
        return users.get_user_by_id(user_id)

    @router.put("/{user_id}", response_model=UserDTO)
    async def update_user(
        user_id: int,
        payload: UpdateUserRequest,
        users: UserManager = Depends(get_manager),
    ) -> UserDTO:
        return users.update_user(user_id, payload.to_changes())

    @router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_user(user_id: int, users: UserManager = Depends(get_manager)) -> Response:
        users.delete_user(user_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    app.include_router(router)

    @app.exception_handler(DuplicateEmailError)
    async def handle_duplicate_email(_: object, exc: DuplicateEmailError):
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})

    @app.exception_handler(UserNotFoundError)
    async def handle_user_not_found(_: object, exc: UserNotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(StorageError)
    async def handle_storage_error(_: object, exc: StorageError):
        logger.error("Storage failure: %s", exc)
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": str(exc)})

    return app


__all__ = ["create_app"]
