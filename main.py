"""Command-line interface for the user administration service."""

from __future__ import annotations
import argparse
import logging
import sys
from dataclasses import replace
from getpass import getpass
from pathlib import Path
from typing import Sequence

from useradmin.config import Settings, load_settings
from useradmin.store import InvalidUserIdError, UserStore, UserStoreError, current_timestamp

logger = logging.getLogger("useradmin.main")


def _add_config_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML configuration file (defaults to USERADMIN_CONFIG)",
    )


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="User administration service utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    init_parser = subparsers.add_parser("init-db", help="Check connectivity to the document store")
    _add_config_argument(init_parser)

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP service")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: 0.0.0.0)")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the HTTP service (default: 8080)",
    )
    serve_parser.add_argument(
        "--reload-templates",
        action="store_true",
        help="Re-read page templates from disk when they change",
    )
    _add_config_argument(serve_parser)

    admin_parser = subparsers.add_parser(
        "admin", help="Launch the interactive administration console"
    )
    _add_config_argument(admin_parser)

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "admin", "init-db"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _open_store(settings: Settings) -> UserStore:
    from useradmin.application import create_store

    try:
        return create_store(settings)
    except UserStoreError as exc:
        raise SystemExit(f"Unable to connect to {settings.mongo_uri}: {exc}") from exc


def _serve(settings: Settings) -> None:
    from useradmin.application import create_application
    import uvicorn

    logger.info("Starting user administration service on http://%s:%s", settings.host, settings.port)
    try:
        app = create_application(settings)
    except UserStoreError as exc:
        raise SystemExit(f"Unable to connect to {settings.mongo_uri}: {exc}") from exc

    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info")


def _run_admin_cli(store: UserStore) -> None:
    """Provide an interactive console for administrators."""

    print("User Administration Console")
    print("Press Ctrl+C at any time to exit.\n")

    try:
        while True:
            print("Select an option:")
            print("  1) List all users")
            print("  2) Add a new user")
            print("  3) Delete a user")
            print("  4) Exit")

            choice = input("Enter choice [1-4]: ").strip()

            if choice == "1":
                _list_users(store)
            elif choice == "2":
                _add_user(store)
            elif choice == "3":
                _delete_user(store)
            elif choice == "4":
                print("Goodbye!")
                return
            else:
                print("Invalid selection. Please choose a number from the menu.\n")

            print()
    except KeyboardInterrupt:
        print("\nExiting administration console.")


def _list_users(store: UserStore) -> None:
    try:
        users = store.list_users()
    except UserStoreError as exc:
        print(f"Failed to list users: {exc}")
        return

    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':<24}  {'Username':<20}  {'Email':<32}  Created")
    print("-" * 100)
    for user in users:
        created = user.created.strftime("%Y-%m-%d %H:%M:%S %Z") if user.created else "-"
        username = user.username or "<no username>"
        email = user.email or "<no email>"
        print(f"{user.id:<24}  {username:<20}  {email:<32}  {created}")


def _add_user(store: UserStore) -> None:
    print("\nCreate a new user (leave the username blank to cancel).")
    username = input("Username: ").strip()
    if not username:
        print("User creation cancelled.")
        return

    email = input("Email address: ").strip() or None

    password = _prompt_for_password()
    if password is None:
        print("Aborted creating user.")
        return

    try:
        user = store.create_user(
            username=username,
            email=email,
            password=password,
            created=current_timestamp(),
        )
    except UserStoreError as exc:
        print(f"Failed to create user: {exc}")
        return

    print(f"Created user {user.id}: {user.username} <{user.email or 'no email set'}>")


def _delete_user(store: UserStore) -> None:
    user_id = input("User ID to delete: ").strip()
    if not user_id:
        print("Deletion cancelled.")
        return

    try:
        removed = store.delete_user(user_id)
    except InvalidUserIdError:
        print(f"{user_id!r} is not a valid user ID.")
        return
    except UserStoreError as exc:
        print(f"Failed to delete user: {exc}")
        return

    if removed:
        print(f"Deleted user {user_id}.")
    else:
        print(f"No user with ID {user_id} exists.")


def _prompt_for_password() -> str | None:
    for _ in range(3):
        password = getpass("Password: ")
        if not password:
            print("Password must not be empty. Please try again.")
            continue
        confirmation = getpass("Confirm password: ")
        if password != confirmation:
            print("Passwords do not match. Please try again.")
            continue
        return password
    return None


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    settings = load_settings(getattr(args, "config", None))

    if args.command == "serve":
        overrides = {}
        if args.host is not None:
            overrides["host"] = args.host
        if args.port is not None:
            overrides["port"] = args.port
        if args.reload_templates:
            overrides["auto_reload_templates"] = True
        _serve(replace(settings, **overrides))
    elif args.command == "admin":
        store = _open_store(settings)
        try:
            _run_admin_cli(store)
        finally:
            store.close()
    elif args.command == "init-db":
        store = _open_store(settings)
        store.close()
        print(f"Document store reachable; users are kept in {store.namespace}.")


if __name__ == "__main__":
    main()
