#!/usr/bin/env python3
"""
Gatekeeper -- operator command line.

Works directly against the record store, without the HTTP layer. Useful for
bootstrapping a fresh database and for emergency account handling.

Usage:
  python main.py seed
  python main.py list-users
  python main.py list-users --json
  python main.py delete-user 7
  python main.py kickout 7
  python main.py purge-sessions
  python main.py hash-password 's3cret'
  python main.py --db sqlite:///other.db list-users

Environment variables:
  DATABASE_URL  Store location (default: auth/gatekeeper.db).
  SECRET_KEY    Required unless DEBUG=true; only the session commands need it.
"""

import argparse
import getpass
import json
from dataclasses import asdict
from typing import Optional

from auth.accounts import AccountService
from auth.directory import UserDirectory
from auth.sessions import SessionAuthority
from auth.store import UserStore
from auth.tokens import hash_password
from core.config import get_settings


def _open_services(db_url: str) -> tuple[UserStore, UserDirectory, AccountService]:
    settings = get_settings()
    store = UserStore(db_url)
    directory = UserDirectory(store)
    sessions = SessionAuthority(store, expire_seconds=settings.token_expire_seconds)
    return store, directory, AccountService(directory, sessions)


def _cmd_seed(args: argparse.Namespace) -> int:
    store, _directory, accounts = _open_services(args.db)
    try:
        created = accounts.seed_defaults(get_settings())
    finally:
        store.close()
    if created:
        print(f"  Created: {', '.join(created)}")
    else:
        print("  Default accounts already present, nothing to do.")
    return 0


def _cmd_list_users(args: argparse.Namespace) -> int:
    store, directory, _accounts = _open_services(args.db)
    try:
        users = directory.list_all()
    finally:
        store.close()

    if args.json:
        rows = []
        for user in users:
            row = asdict(user)
            row.pop("password", None)
            rows.append(row)
        print(json.dumps(rows, indent=2))
        return 0

    if not users:
        print("  No users.")
        return 0
    print(f"  {'ID':>4}  {'USERNAME':<20} {'EMAIL':<30} {'STATUS':<8}")
    for user in users:
        status = "deleted" if user.is_deleted else "active"
        print(f"  {user.id:>4}  {user.username:<20} {user.email or '':<30} {status:<8}")
    return 0


def _cmd_delete_user(args: argparse.Namespace) -> int:
    store, directory, accounts = _open_services(args.db)
    try:
        if not directory.soft_delete(args.user_id):
            print(f"  [!] User {args.user_id} not found.")
            return 1
        revoked = accounts.sessions.force_invalidate(args.user_id)
    finally:
        store.close()
    print(f"  User {args.user_id} deleted, {revoked} session(s) ended.")
    return 0


def _cmd_kickout(args: argparse.Namespace) -> int:
    store, _directory, accounts = _open_services(args.db)
    try:
        revoked = accounts.sessions.force_invalidate(args.user_id)
    finally:
        store.close()
    print(f"  {revoked} session(s) ended for user {args.user_id}.")
    return 0


def _cmd_purge_sessions(args: argparse.Namespace) -> int:
    store, _directory, accounts = _open_services(args.db)
    try:
        removed = accounts.sessions.purge()
    finally:
        store.close()
    print(f"  {removed} revoked or expired session(s) removed.")
    return 0


def _cmd_hash_password(args: argparse.Namespace) -> int:
    plain: Optional[str] = args.password
    if plain is None:
        plain = getpass.getpass("Password: ")
    if not plain:
        print("  [!] Password must not be empty.")
        return 1
    try:
        print(hash_password(plain))
    except ValueError as exc:
        print(f"  [!] {exc}")
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gatekeeper",
        description="Account administration for the Gatekeeper service.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py seed
  python main.py list-users --json
  python main.py delete-user 7
  DATABASE_URL=sqlite:///prod.db python main.py kickout 7
        """,
    )
    parser.add_argument(
        "--db",
        metavar="URL",
        default=None,
        help="SQLAlchemy database URL (default: DATABASE_URL or auth/gatekeeper.db)",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    seed = sub.add_parser("seed", help="Create the default admin and demo accounts if missing")
    seed.set_defaults(func=_cmd_seed)

    list_users = sub.add_parser("list-users", help="List every account, deleted ones included")
    list_users.add_argument("--json", action="store_true", help="Output JSON (passwords omitted)")
    list_users.set_defaults(func=_cmd_list_users)

    delete_user = sub.add_parser("delete-user", help="Soft-delete an account and end its sessions")
    delete_user.add_argument("user_id", type=int, metavar="USER_ID")
    delete_user.set_defaults(func=_cmd_delete_user)

    kickout = sub.add_parser("kickout", help="End every session of an account")
    kickout.add_argument("user_id", type=int, metavar="USER_ID")
    kickout.set_defaults(func=_cmd_kickout)

    purge = sub.add_parser("purge-sessions", help="Delete revoked and expired session rows")
    purge.set_defaults(func=_cmd_purge_sessions)

    hash_pw = sub.add_parser("hash-password", help="Print a bcrypt hash of a password")
    hash_pw.add_argument("password", nargs="?", default=None, help="Plaintext (prompted if omitted)")
    hash_pw.set_defaults(func=_cmd_hash_password)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    if args.db is None:
        args.db = get_settings().database_url
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
