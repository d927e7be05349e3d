from __future__ import annotations

import sqlite3
import threading
from dataclasses import replace
from pathlib import Path

import pytest

from userregistry.manager import build_manager
from userregistry.database import Database, resolve_database_path
from userregistry.errors import DuplicateEmailError, StorageError
from userregistry.models import User, UserChanges
from userregistry.repository import SQLiteUserRepository
from userregistry.schemas import CreateUserRequest


@pytest.fixture()
def database(tmp_path: Path) -> Database:
    db_path = tmp_path / "nested" / "users.sqlite3"
    db = Database(db_path)
    db.initialize()
    return db


@pytest.fixture()
def repository(database: Database) -> SQLiteUserRepository:
    return SQLiteUserRepository(database)


def test_initialize_creates_parent_directory_and_is_idempotent(database: Database) -> None:
    assert database.path.parent.is_dir()
    database.initialize()


def test_save_assigns_identifier_and_timestamps(repository: SQLiteUserRepository) -> None:
    saved = repository.save(User(name="Alice", email="alice@example.com", phone="123"))

    assert saved.id is not None
    assert saved.created_at is not None
    assert saved.updated_at == saved.created_at
    assert saved.active is True
    assert repository.find_by_id(saved.id) == saved


def test_save_existing_refreshes_updated_at_only(repository: SQLiteUserRepository) -> None:
    saved = repository.save(User(name="Alice", email="alice@example.com", phone="123"))

    resaved = repository.save(replace(saved, name="Alice Smith", active=False))

    assert resaved.id == saved.id
    assert resaved.created_at == saved.created_at
    assert resaved.updated_at >= saved.updated_at
    reloaded = repository.find_by_id(saved.id)
    assert reloaded is not None
    assert reloaded.name == "Alice Smith"
    assert reloaded.active is False


def test_find_by_email_and_active(repository: SQLiteUserRepository) -> None:
    first = repository.save(User(name="One", email="one@example.com", phone="1"))
    repository.save(User(name="Two", email="two@example.com", phone="2", active=False))
    third = repository.save(User(name="Three", email="three@example.com", phone="3"))

    assert repository.find_by_email("two@example.com").name == "Two"
    assert repository.find_by_email("missing@example.com") is None
    assert [user.id for user in repository.find_by_active(True)] == [first.id, third.id]
    assert [user.name for user in repository.find_by_active(False)] == ["Two"]
    assert [user.name for user in repository.find_all()] == ["One", "Two", "Three"]


def test_exists_and_delete(repository: SQLiteUserRepository) -> None:
    saved = repository.save(User(name="Bob", email="bob@example.com", phone="9"))

    assert repository.exists_by_id(saved.id)
    repository.delete_by_id(saved.id)
    assert not repository.exists_by_id(saved.id)
    assert repository.find_by_id(saved.id) is None


@pytest.mark.parametrize("user_id", [0, -5, 2**63 - 1, 2**64, -(2**70)])
def test_out_of_range_identifiers_are_absent(repository: SQLiteUserRepository, user_id: int) -> None:
    assert repository.find_by_id(user_id) is None
    assert repository.exists_by_id(user_id) is False
    repository.delete_by_id(user_id)


def test_unique_email_backstop_raises_storage_error(repository: SQLiteUserRepository) -> None:
    repository.save(User(name="One", email="same@example.com", phone="1"))

    with pytest.raises(StorageError) as excinfo:
        repository.save(User(name="Two", email="same@example.com", phone="2"))

    assert isinstance(excinfo.value.__cause__, sqlite3.IntegrityError)


def test_saving_deleted_user_raises_storage_error(repository: SQLiteUserRepository) -> None:
    saved = repository.save(User(name="Gone", email="gone@example.com", phone="0"))
    repository.delete_by_id(saved.id)

    with pytest.raises(StorageError):
        repository.save(replace(saved, name="Back"))


def test_transaction_rolls_back_on_error(database: Database, repository: SQLiteUserRepository) -> None:
    with pytest.raises(RuntimeError):
        with database.transaction():
            repository.save(User(name="Temp", email="temp@example.com", phone="1"))
            raise RuntimeError("abort")

    assert repository.find_all() == []


def test_transaction_commits_and_nests(database: Database, repository: SQLiteUserRepository) -> None:
    with database.transaction() as outer:
        with database.transaction() as inner:
            assert inner is outer
            repository.save(User(name="Kept", email="kept@example.com", phone="1"))

    assert [user.name for user in repository.find_all()] == ["Kept"]


def test_manager_duplicate_update_leaves_stored_record_unchanged(database: Database) -> None:
    manager = build_manager(database)
    target = manager.create_user(CreateUserRequest(name="Erin", email="erin@example.com", phone="777"))
    manager.create_user(CreateUserRequest(name="Frank", email="frank@example.com", phone="888"))

    with pytest.raises(DuplicateEmailError):
        manager.update_user(target.id, UserChanges(name="Changed", email="frank@example.com"))

    reloaded = manager.get_user_by_id(target.id)
    assert reloaded.name == "Erin"
    assert reloaded.email == "erin@example.com"


def test_concurrent_writers_queue_instead_of_failing(database: Database) -> None:
    manager = build_manager(database)
    errors: list[Exception] = []
    start = threading.Barrier(20)

    def register(index: int) -> None:
        start.wait()
        try:
            created = manager.create_user(
                CreateUserRequest(name=f"User {index}", email=f"e{index}@x.com", phone="1")
            )
            manager.update_user(created.id, UserChanges(phone="2"))
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=register, args=(index,)) for index in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    users = manager.get_all_users()
    assert sorted(user.email for user in users) == sorted(f"e{index}@x.com" for index in range(20))
    assert all(user.phone == "2" for user in users)


def test_resolve_database_path_defaults_to_data_directory() -> None:
    path = resolve_database_path(None)
    assert path.name == "users.sqlite3"
    assert path.parent.name == "data"


def test_resolve_database_path_expands_explicit_value(tmp_path: Path) -> None:
    explicit = tmp_path / "custom.sqlite3"
    assert resolve_database_path(str(explicit)) == explicit.resolve()
