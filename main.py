#!/usr/bin/env python3
"""
credstore -- Operator CLI for the persistent credential store.

Usage:
  python main.py bootstrap
  python main.py create alice --role Reader --role Writer
  python main.py create bob --password hunter2 --role Reader
  python main.py passwd alice
  python main.py roles alice --role Administrator
  python main.py delete alice
  python main.py list
  python main.py check alice

Environment variables (see core/config.py):
  DATABASE_URL              SQLAlchemy URL of the user store (default: local SQLite file)
  USERS_TABLE               Table holding the serialized user records (default: users)
  BOOTSTRAP_ADMIN_PASSWORD  Password given to "admin" by `bootstrap` (default: abcd)
  LOG_LEVEL                 DEBUG, INFO, WARNING, ERROR or CRITICAL (default: INFO)
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys

from pydantic import ValidationError

from auth.exceptions import BackendError, DuplicateUserError, UserNotFoundError
from auth.models import Roles
from auth.store import UserRepository
from core.config import get_settings
from kv.store import KVStore


def _read_password(args: argparse.Namespace, prompt: str = "Password: ") -> str:
    """Use --password if given, otherwise prompt without echo."""
    if args.password is not None:
        return args.password
    return getpass.getpass(prompt)


def _cmd_bootstrap(repo: UserRepository, args: argparse.Namespace) -> int:
    repo.create_admin_account_if_no_users_exist()
    return 0


def _cmd_create(repo: UserRepository, args: argparse.Namespace) -> int:
    repo.create_user(args.username, _read_password(args), args.role or [])
    print(f"  Created {args.username}.")
    return 0


def _cmd_passwd(repo: UserRepository, args: argparse.Namespace) -> int:
    repo.change_password(args.username, _read_password(args, "New password: "))
    print(f"  Password changed for {args.username}.")
    return 0


def _cmd_roles(repo: UserRepository, args: argparse.Namespace) -> int:
    repo.set_roles(args.username, args.role or [])
    print(f"  Roles for {args.username}: {', '.join(args.role or []) or '(none)'}")
    return 0


def _cmd_delete(repo: UserRepository, args: argparse.Namespace) -> int:
    repo.delete_user(args.username)
    print(f"  Deleted {args.username}.")
    return 0


def _cmd_list(repo: UserRepository, args: argparse.Namespace) -> int:
    principals = sorted(repo.all_users, key=lambda p: p.username)
    if not principals:
        print("  No users.")
        return 0
    width = max(len(p.username) for p in principals)
    for p in principals:
        print(f"  {p.username:<{width}}  {', '.join(p.roles) or '(none)'}")
    return 0


def _cmd_check(repo: UserRepository, args: argparse.Namespace) -> int:
    principal = repo.authenticate_user(args.username, _read_password(args))
    if principal is None:
        print("  Authentication failed.")
        return 1
    print(f"  OK: {principal.username} ({', '.join(principal.roles) or 'no roles'})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="credstore",
        description="Manage usernames, passwords and roles in the credential store.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Known roles: {', '.join(Roles.ALL_ROLES)} (any string is accepted).",
    )
    parser.add_argument(
        "--db",
        metavar="URL",
        default=None,
        help="SQLAlchemy database URL (overrides DATABASE_URL)",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p = sub.add_parser("bootstrap", help='Create "admin" with all roles if the store is empty')
    p.set_defaults(func=_cmd_bootstrap)

    p = sub.add_parser("create", help="Create a user")
    p.add_argument("username")
    p.add_argument("--password", help="Password (prompted if omitted)")
    p.add_argument("--role", action="append", metavar="ROLE", help="Role to grant (repeatable)")
    p.set_defaults(func=_cmd_create)

    p = sub.add_parser("passwd", help="Change a user's password")
    p.add_argument("username")
    p.add_argument("--password", help="New password (prompted if omitted)")
    p.set_defaults(func=_cmd_passwd)

    p = sub.add_parser("roles", help="Replace a user's roles (no --role clears them)")
    p.add_argument("username")
    p.add_argument("--role", action="append", metavar="ROLE", help="Role to grant (repeatable)")
    p.set_defaults(func=_cmd_roles)

    p = sub.add_parser("delete", help="Delete a user (no error if absent)")
    p.add_argument("username")
    p.set_defaults(func=_cmd_delete)

    p = sub.add_parser("list", help="List users and their roles")
    p.set_defaults(func=_cmd_list)

    p = sub.add_parser("check", help="Verify a username/password pair")
    p.add_argument("username")
    p.add_argument("--password", help="Password (prompted if omitted)")
    p.set_defaults(func=_cmd_check)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 2

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"  [!] Invalid configuration: {e}", file=sys.stderr)
        return 3
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        store = KVStore(db_url=args.db)
    except BackendError as e:
        print(f"  [!] Could not open user store: {e}", file=sys.stderr)
        return 3
    try:
        return args.func(UserRepository(store), args)
    except DuplicateUserError as e:
        print(f"  [!] {e}")
        return 1
    except UserNotFoundError as e:
        print(f"  [!] {e}")
        return 1
    except BackendError as e:
        print(f"  [!] Store error: {e}", file=sys.stderr)
        return 3
    finally:
        store.close()


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
