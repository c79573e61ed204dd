import argparse
import getpass
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from useradmin.application import create_store
from useradmin.config import load_settings
from useradmin.store import UserStoreError, current_timestamp


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a user record")
    parser.add_argument("username", help="Username for the new record")
    parser.add_argument("email", help="Email address for the new record")
    parser.add_argument(
        "--config",
        dest="config_path",
        type=Path,
        default=None,
        help="Path to a YAML configuration file (defaults to USERADMIN_CONFIG)",
    )
    return parser.parse_args()


def prompt_for_password() -> str:
    for _ in range(3):
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match. Try again.", file=sys.stderr)
            continue
        if not password:
            print("Password must not be empty.", file=sys.stderr)
            continue
        return password
    raise SystemExit("Failed to set password after three attempts.")


def main() -> int:
    args = parse_args()
    password = prompt_for_password()

    settings = load_settings(args.config_path)

    try:
        store = create_store(settings)
    except UserStoreError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        user = store.create_user(
            username=args.username.strip(),
            email=args.email.strip(),
            password=password,
            created=current_timestamp(),
        )
    except UserStoreError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        store.close()

    print(f"Created user {user.id}: {user.username} <{user.email}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
