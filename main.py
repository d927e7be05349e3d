"""Command-line interface for the user registry service."""

from __future__ import annotations
import argparse
import logging
import os
import sys
from typing import Sequence

try:
    import httpx
except ImportError as exc:  # pragma: no cover - exercised in environments missing deps
    raise SystemExit(
        "The 'httpx' package is required. Execute `pip install -e .` to install dependencies."
    ) from exc

from pydantic import ValidationError

from userregistry.config import Settings, load_settings, resolve_config_path
from userregistry.database import Database
from userregistry.errors import DuplicateEmailError, UserNotFoundError
from userregistry.manager import UserManager, build_manager
from userregistry.models import UserChanges
from userregistry.schemas import CreateUserRequest

logger = logging.getLogger("userregistry.main")

_DEFAULT_SERVICE_URL = "http://localhost:8080"


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="User registry utilities")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML settings file (default: USER_REGISTRY_CONFIG or config/settings.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise the user database")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP user registry service")
    serve_parser.add_argument("--host", default=None, help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the HTTP API (default: 8080)",
    )

    admin_parser = subparsers.add_parser(
        "admin", help="Launch the interactive administration console"
    )
    admin_parser.add_argument(
        "--service-url",
        default=None,
        help="Base URL of a running user registry service (default: http://localhost:8080)",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "admin", "init-db"}

    config_args: list[str] = []
    if len(args_list) >= 2 and args_list[0] == "--config":
        config_args, args_list = args_list[:2], args_list[2:]

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args([*config_args, *args_list])
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args([*config_args, *args_list])
            args_list = ["serve", *args_list]

    return parser.parse_args([*config_args, *args_list])


def _load_settings(config: str | None) -> Settings:
    config_path = resolve_config_path(config or os.getenv("USER_REGISTRY_CONFIG"))
    return load_settings(config_path)


def _initialise_database(settings: Settings) -> Database:
    database = Database(settings.database_path)
    database.initialize()
    logger.info("Database initialised at %s", settings.database_path)
    return database


def _serve(*, database: Database, host: str, port: int) -> None:
    from userregistry.api import create_app
    import uvicorn

    logger.info("Starting user registry API on http://%s:%s", host, port)

    app = create_app(database=database)
    uvicorn.run(app, host=host, port=port, log_level="info")


def _run_admin_cli(manager: UserManager, *, default_service_url: str | None = None) -> None:
    """Provide an interactive management console for administrators."""

    service_url = default_service_url or _DEFAULT_SERVICE_URL

    print("User Registry Administration Console")
    print("Press Ctrl+C at any time to exit.\n")

    try:
        while True:
            print("Select an option:")
            print("  1) List all users")
            print("  2) Add a new user")
            print("  3) Change a user's phone number")
            print("  4) Activate or deactivate a user")
            print("  5) Delete a user")
            print("  6) Show active users reported by a running service")
            print("  7) Exit")

            choice = input("Enter choice [1-7]: ").strip()

            if choice == "1":
                _list_users(manager)
            elif choice == "2":
                _add_user(manager)
            elif choice == "3":
                _change_phone(manager)
            elif choice == "4":
                _toggle_active(manager)
            elif choice == "5":
                _delete_user(manager)
            elif choice == "6":
                service_url = _show_remote_active_users(service_url)
            elif choice == "7":
                print("Goodbye!")
                return
            else:
                print("Invalid selection. Please choose a number from the menu.\n")

            print()
    except KeyboardInterrupt:
        print("\nExiting administration console.")


def _list_users(manager: UserManager) -> None:
    users = manager.get_all_users()
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':>4}  {'Name':<24}  {'Email':<32}  {'Phone':<16}  Active")
    print("-" * 88)
    for user in users:
        active = "yes" if user.active else "no"
        print(f"{user.id:>4}  {user.name:<24}  {user.email:<32}  {user.phone:<16}  {active}")


def _add_user(manager: UserManager) -> None:
    print("\nCreate a new user (leave the name blank to cancel).")
    name = input("Name: ").strip()
    if not name:
        print("User creation cancelled.")
        return

    email = input("Email address: ").strip()
    phone = input("Phone number: ").strip()

    try:
        request = CreateUserRequest(name=name, email=email, phone=phone)
    except ValidationError as exc:
        print(f"Invalid user details: {_summarise_validation_error(exc)}")
        return

    try:
        user = manager.create_user(request)
    except DuplicateEmailError as exc:
        print(f"Failed to create user: {exc}")
        return

    print(f"Created user #{user.id}: {user.name} <{user.email}>")


def _change_phone(manager: UserManager) -> None:
    user_id = _prompt_for_user_id()
    if user_id is None:
        return

    phone = input("New phone number: ").strip()
    if not phone:
        print("Phone number must not be empty.")
        return

    try:
        user = manager.update_user(user_id, UserChanges(phone=phone))
    except UserNotFoundError as exc:
        print(str(exc))
        return

    print(f"Updated user #{user.id}: phone is now {user.phone}")


def _toggle_active(manager: UserManager) -> None:
    user_id = _prompt_for_user_id()
    if user_id is None:
        return

    try:
        current = manager.get_user_by_id(user_id)
        user = manager.update_user(user_id, UserChanges(active=not current.active))
    except UserNotFoundError as exc:
        print(str(exc))
        return

    state = "active" if user.active else "inactive"
    print(f"User #{user.id} is now {state}.")


def _delete_user(manager: UserManager) -> None:
    user_id = _prompt_for_user_id()
    if user_id is None:
        return

    confirmation = input(f"Delete user #{user_id}? Type 'yes' to confirm: ").strip().lower()
    if confirmation != "yes":
        print("Deletion cancelled.")
        return

    try:
        manager.delete_user(user_id)
    except UserNotFoundError as exc:
        print(str(exc))
        return

    print(f"Deleted user #{user_id}.")


def _prompt_for_user_id() -> int | None:
    raw = input("User ID: ").strip()
    try:
        return int(raw)
    except ValueError:
        print("User ID must be a whole number.")
        return None


def _summarise_validation_error(exc: ValidationError) -> str:
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()))
        messages.append(f"{field}: {error.get('msg', 'invalid value')}")
    return "; ".join(messages)


def _show_remote_active_users(default_url: str) -> str:
    base_url = default_url or _DEFAULT_SERVICE_URL
    endpoint = base_url.rstrip("/") + "/api/users/active"

    try:
        response = httpx.get(endpoint, timeout=10.0)
    except httpx.HTTPError as exc:
        print(f"Failed to contact user registry service: {exc}")
        return base_url

    if response.status_code != 200:
        print(f"Service responded with {response.status_code}: {response.text.strip()}")
        return base_url

    try:
        users = response.json()
    except ValueError:
        print("Service returned an unexpected response format.")
        return base_url

    if not users:
        print(f"No active users are registered with {base_url}.")
        return base_url

    print(f"Found {len(users)} active user(s) at {base_url}:")
    for user in users:
        user_id = user.get("id", "?")
        name = user.get("name", "unknown")
        email = user.get("email", "<no email>")
        print(f"- #{user_id} {name} <{email}>")

    return base_url


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    settings = _load_settings(args.config)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    database = _initialise_database(settings)

    if args.command == "serve":
        _serve(
            database=database,
            host=args.host or settings.host,
            port=args.port or settings.port,
        )
    elif args.command == "admin":
        _run_admin_cli(
            build_manager(database),
            default_service_url=getattr(args, "service_url", None),
        )
    elif args.command == "init-db":
        print("Database initialisation complete.")


if __name__ == "__main__":
    main()
