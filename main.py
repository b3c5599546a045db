#!/usr/bin/env python3
"""
SellerHub maintenance CLI.

Usage:
  python main.py sweep-sessions
  python main.py create-account admin@example.com --role admin

Configuration comes from the same environment / .env file as the API
(DATABASE_URL, PASSWORD_HASH_ITERATIONS, ...).
"""

import argparse
import getpass
import logging
import sys
from typing import Callable, Optional, Sequence

from api.models import EMAIL_PATTERN, check_password_policy
from auth.models import Role
from auth.service import AuthService
from auth.store import AccountStore, SessionStore
from core.config import Settings, get_settings
from core.db import create_db_engine
from core.errors import SellerHubError

logger = logging.getLogger("sellerhub.cli")


def build_auth_service(settings: Settings) -> AuthService:
    engine = create_db_engine(settings.database_url)
    return AuthService(
        AccountStore(engine),
        SessionStore(engine, ttl_seconds=settings.session_ttl_seconds),
        hash_iterations=settings.password_hash_iterations,
    )


def _cmd_sweep_sessions(auth: AuthService, args: argparse.Namespace) -> int:
    removed = auth.sweep_expired_sessions()
    print(f"  Removed {removed} expired session(s).")
    return 0


def _cmd_create_account(auth: AuthService, args: argparse.Namespace, prompt: Callable[[str], str]) -> int:
    email = args.email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        print(f"  [!] '{args.email}' is not a valid email address.")
        return 1

    password = prompt("Password: ")
    if password != prompt("Confirm password: "):
        print("  [!] Passwords do not match.")
        return 1
    try:
        check_password_policy(password)
    except ValueError as e:
        print(f"  [!] {e}")
        return 1

    try:
        account = auth.register(email, password, Role(args.role))
    except SellerHubError as e:
        print(f"  [!] {e.message}")
        return 1
    logger.info("Provisioned account %s via CLI", account.id)
    print(f"  Created {account.role.value} account {account.email} ({account.id})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sellerhub", description="SellerHub maintenance commands.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("sweep-sessions", help="Delete expired sessions from the database.")

    create = sub.add_parser("create-account", help="Provision an account (password read from the terminal).")
    create.add_argument("email")
    create.add_argument(
        "--role",
        choices=[r.value for r in Role],
        default=Role.operator.value,
        help="Account role (default: operator).",
    )
    return parser


def main(
    argv: Optional[Sequence[str]] = None,
    auth: Optional[AuthService] = None,
    prompt: Optional[Callable[[str], str]] = None,
) -> int:
    """Run one command. auth and prompt are injectable for tests."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(level=settings.effective_log_level, format="%(levelname)-5s %(name)s %(message)s")
    if auth is None:
        auth = build_auth_service(settings)

    if args.command == "sweep-sessions":
        return _cmd_sweep_sessions(auth, args)
    return _cmd_create_account(auth, args, prompt or getpass.getpass)


if __name__ == "__main__":
    sys.exit(main())
