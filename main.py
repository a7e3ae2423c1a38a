#!/usr/bin/env python3
"""
Chirpy -- operator commands for the session store.

Usage:
  python main.py create-user a@b.com
  python main.py purge-refresh-tokens

Environment variables:
  JWT_SECRET    Required unless DEBUG=true (see core/config.py).
  DATABASE_URL  SQLAlchemy URL of the session store. Defaults to chirpy.db.
"""

import argparse
import getpass
import sys

from auth.errors import AuthError
from auth.service import SessionConfig, SessionService
from auth.store import SessionStore
from core.config import get_settings


def _build_service() -> SessionService:
    settings = get_settings()
    store = SessionStore(settings.database_url)
    return SessionService(store, SessionConfig.from_settings(settings))


def _create_user(service: SessionService, email: str) -> int:
    """Prompt for a password (twice, never echoed) and register the account."""
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Repeat password: "):
        print("  [!] Passwords do not match.")
        return 1
    try:
        user = service.register(email, password)
    except AuthError as exc:
        print(f"  [!] {exc.message}")
        return 1
    print(f"  Created user {user.id} ({user.email})")
    return 0


def _purge(service: SessionService) -> int:
    removed = service.purge_expired_refresh_tokens()
    print(f"  Removed {removed} expired refresh token(s).")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="chirpy",
        description="Operator commands for the Chirpy session store.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py create-user a@b.com
  DATABASE_URL=postgresql://... python main.py purge-refresh-tokens
        """,
    )
    sub = parser.add_subparsers(dest="command")

    create = sub.add_parser("create-user", help="Register a user; the password is prompted")
    create.add_argument("email", help="Email address for the new account")

    sub.add_parser("purge-refresh-tokens", help="Delete refresh tokens past their expiry")

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    service = _build_service()
    try:
        if args.command == "create-user":
            return _create_user(service, args.email)
        return _purge(service)
    finally:
        service.store.close()


if __name__ == "__main__":
    sys.exit(main())
