#!/usr/bin/env python3
"""CLI management tool for user credentials.

Provides commands to:
- Add users with bcrypt-hashed passwords
- List all users with their roles
- Show a single user's credential record (hash withheld)
- Verify an email/password pair
- Remove users by email
"""

import argparse
import getpass
import logging
import sys
from pathlib import Path

# Ensure warden package is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from warden import events
from warden.authenticator import Authenticator
from warden.config import ConfigError, build_service, load_config
from warden.errors import DuplicateEmail, StorageError
from warden.service import CredentialService


def _read_password(args, prompt: str):
    if args.password:
        return args.password
    password = getpass.getpass(prompt)
    if not password:
        print("Error: Password cannot be empty", file=sys.stderr)
        return None
    return password


def add_user(args, service: CredentialService) -> int:
    """Register a new user with optional password prompt."""
    password = _read_password(args, f"Password for {args.email}: ")
    if password is None:
        return 1

    outcome = service.register_user(args.email, password, role=args.role)
    if not outcome.ok:
        if isinstance(outcome.error, DuplicateEmail):
            print(f"Error: User '{args.email}' already exists", file=sys.stderr)
        else:
            print(f"Error: {outcome.error}", file=sys.stderr)
        return 1

    user = outcome.record
    print(f"✓ User created: {user.id} ({user.email}, {user.role})")
    return 0


def list_users(args, service: CredentialService) -> int:
    """List all users with their roles."""
    try:
        users = service.store.find_all()
    except StorageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not users:
        print("No users found")
        return 0

    print(f"{'ID':<6} {'Email':<32} {'Role':<10}")
    print("-" * 50)

    for user in users:
        print(f"{user.id:<6} {user.email:<32} {user.role:<10}")

    return 0


def show_user(args, service: CredentialService) -> int:
    """Show one user's credential record without the password hash."""
    outcome = service.load_credential(args.email)
    if not outcome.ok:
        print(f"Error: {outcome.error}", file=sys.stderr)
        return 1

    user = outcome.record
    print(f"ID:       {user.id}")
    print(f"Email:    {user.email}")
    print(f"Role:     {user.role}")
    print(f"Created:  {user.created_at.isoformat() if user.created_at else '-'}")
    print(f"Updated:  {user.updated_at.isoformat() if user.updated_at else '-'}")
    return 0


def verify_user(args, service: CredentialService) -> int:
    """Check an email/password pair."""
    password = _read_password(args, f"Password for {args.email}: ")
    if password is None:
        return 1

    outcome = Authenticator(service).authenticate(args.email, password)
    if not outcome.ok:
        print("Error: Invalid email or password", file=sys.stderr)
        return 1

    print(f"✓ Credentials valid for {outcome.record.email}")
    return 0


def remove_user(args, service: CredentialService) -> int:
    """Remove a user by email."""
    outcome = service.load_credential(args.email)
    if not outcome.ok:
        print(f"Error: User '{args.email}' not found", file=sys.stderr)
        return 1

    user = outcome.record
    try:
        removed = service.store.delete(user)
    except StorageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if not removed:
        print(f"Error: Failed to delete user '{args.email}'", file=sys.stderr)
        return 1

    events.log_event("user_removed", user_id=user.id, email=user.email)
    print(f"✓ Removed user {user.id} ({user.email})")
    return 0


COMMANDS = {
    "add-user": add_user,
    "list-users": list_users,
    "show-user": show_user,
    "verify": verify_user,
    "remove-user": remove_user,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="warden-manage",
        description="Manage Warden user credentials",
    )
    parser.add_argument("--config", "-c", help="Path to config.json (optional)")
    parser.add_argument(
        "--db-path",
        help="Path to SQLite database (overrides config, default: .warden/users.db)",
    )
    parser.add_argument(
        "--log-level",
        "-l",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    add_parser = subparsers.add_parser("add-user", help="Register a new user")
    add_parser.add_argument("--email", required=True, help="Email")
    add_parser.add_argument("--password", help="Password (prompted if omitted)")
    add_parser.add_argument("--role", default="USER", help="Role label (default: USER)")

    subparsers.add_parser("list-users", help="List all users")

    show_parser = subparsers.add_parser("show-user", help="Show a user's record")
    show_parser.add_argument("--email", required=True, help="Email")

    verify_parser = subparsers.add_parser("verify", help="Verify email and password")
    verify_parser.add_argument("--email", required=True, help="Email")
    verify_parser.add_argument("--password", help="Password (prompted if omitted)")

    remove_parser = subparsers.add_parser("remove-user", help="Remove a user")
    remove_parser.add_argument("--email", required=True, help="Email")

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if args.db_path:
        config["store"]["backend"] = "sqlite"
        config["store"]["db_path"] = args.db_path

    try:
        service = build_service(config)
    except StorageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        return COMMANDS[args.command](args, service)
    finally:
        service.store.close()


if __name__ == "__main__":
    sys.exit(main())
