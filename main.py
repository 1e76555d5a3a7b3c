#!/usr/bin/env python3
"""
Textura backend -- management command line.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080
  python main.py register alice alice@example.com
  python main.py status alice

Configuration comes from the environment / .env (see core/config.py):
  SECRET_KEY, DATABASE_URL, MAX_FAILED_ATTEMPTS, LOCKOUT_MINUTES, ...

register prompts for the password so it never lands in shell history.
status is read-only: it reports the lockout counter and any active lock
but never changes them.
"""

import argparse
import getpass
import logging
import sys
from datetime import datetime, timezone

from auth.guard import AccountGuard
from auth.models import lock_state
from auth.store import AccountStore
from core.config import get_settings


def _build_guard() -> tuple[AccountGuard, AccountStore]:
    settings = get_settings()
    store = AccountStore(settings.database_url)
    return AccountGuard.from_settings(store, settings), store


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _cmd_register(args: argparse.Namespace) -> int:
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Confirm password: "):
        print("  [!] Passwords do not match.")
        return 1

    guard, store = _build_guard()
    try:
        result = guard.register_account(args.username, args.email, password)
    finally:
        store.close()
    if not result.ok:
        print(f"  [!] {result.message} ({result.error.value})")
        return 1
    print(f"  {result.message} id={result.account.id} username={result.account.username}")
    return 0


def _cmd_status(args: argparse.Namespace) -> int:
    guard, store = _build_guard()
    try:
        account = guard.find_account(args.username)
    finally:
        store.close()
    if account is None:
        print(f"  [!] No account named '{args.username}'.")
        return 1

    state = lock_state(account, datetime.now(timezone.utc))
    print(f"  Account:         {account.username} (id={account.id})")
    print(f"  Email:           {account.email}")
    print(f"  Failed attempts: {state.count} / {guard.max_failed_attempts}")
    if state.locked:
        print(f"  Locked until:    {state.until.isoformat()}")
    else:
        print("  Locked:          no")
    print(f"  Last login:      {account.last_login.isoformat() if account.last_login else 'never'}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Textura backend -- accounts, login lockout, and session tokens.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    serve.set_defaults(func=_cmd_serve)

    register = sub.add_parser("register", help="Create an account (password is prompted)")
    register.add_argument("username")
    register.add_argument("email")
    register.set_defaults(func=_cmd_register)

    status = sub.add_parser("status", help="Show an account's failed-login counter and lock")
    status.add_argument("username")
    status.set_defaults(func=_cmd_status)

    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
