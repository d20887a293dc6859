"""Command-line interface for the backoffice service."""

from __future__ import annotations
import argparse
import logging
import sys
from dataclasses import replace
from getpass import getpass
from pathlib import Path
from typing import Callable, Optional, Sequence

from backoffice.config import Settings, load_settings
from backoffice.database import Database, resolve_database_path
from backoffice.errors import ProvisioningError
from backoffice.models import ROLE_ADMIN
from backoffice.provisioning import AdminProvisioner, ProvisioningAction

logger = logging.getLogger("backoffice.main")

_KNOWN_COMMANDS = {"serve", "init-db", "create-admin", "list-users"}


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to a YAML settings file (defaults to BACKOFFICE_CONFIG)",
    )
    common.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (defaults to BACKOFFICE_DB_PATH or data/backoffice.sqlite3)",
    )

    parser = argparse.ArgumentParser(description="Backoffice management utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", parents=[common], help="Initialise the backoffice database")

    serve_parser = subparsers.add_parser(
        "serve", parents=[common], help="Start the dashboard web application"
    )
    serve_parser.add_argument("--host", default=None, help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port to listen on (default: 8000)")

    admin_parser = subparsers.add_parser(
        "create-admin",
        parents=[common],
        help="Create an admin user for the application",
    )
    admin_parser.add_argument("email", nargs="?", default=None, help="Admin email address")
    admin_parser.add_argument("password", nargs="?", default=None, help="Admin password")
    admin_parser.add_argument(
        "-p",
        "--promote",
        action="store_true",
        help="Promote an existing user to admin",
    )

    subparsers.add_parser("list-users", parents=[common], help="List registered users and their roles")

    args_list = list(argv) if argv is not None else sys.argv[1:]

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in _KNOWN_COMMANDS:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _load_settings(args: argparse.Namespace) -> Settings:
    config_path = Path(args.config_path).expanduser() if getattr(args, "config_path", None) else None
    settings = load_settings(config_path)
    if getattr(args, "db_path", None):
        settings = replace(settings, database_path=resolve_database_path(args.db_path))
    return settings


def _initialise_database(settings: Settings) -> Database:
    database = Database(settings.database_path)
    database.initialize()
    logger.debug("Database initialised at %s", settings.database_path)
    return database


def _serve(settings: Settings, database: Database, *, host: Optional[str], port: Optional[int]) -> None:
    from backoffice import create_app
    import uvicorn

    bind_host = host or settings.host
    bind_port = port or settings.port
    logger.info("Starting dashboard on http://%s:%s", bind_host, bind_port)

    app = create_app(database=database, settings=settings)
    uvicorn.run(app, host=bind_host, port=bind_port, log_level=settings.log_level.lower())


def _create_admin(
    database: Database,
    *,
    email: Optional[str],
    password: Optional[str],
    promote: bool,
    prompt: Callable[[str], str] = input,
    prompt_secret: Callable[[str], str] = getpass,
) -> int:
    provisioner = AdminProvisioner(database, prompt=prompt, prompt_secret=prompt_secret)
    try:
        result = provisioner.provision(email, password, promote=promote)
    except ProvisioningError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        if exc.hint:
            print(f"[NOTE] {exc.hint}", file=sys.stderr)
        return 1
    except (EOFError, KeyboardInterrupt):
        print(file=sys.stderr)
        print("[ERROR] Input aborted; no account was changed.", file=sys.stderr)
        return 1

    print(f"[OK] {result.message}")
    if result.action is ProvisioningAction.CREATED:
        print()
        print(f"{'Email':<32}  Role")
        print("-" * 48)
        print(f"{result.user.email:<32}  {ROLE_ADMIN}")
        print()
        print("[NOTE] You can now login at /login with these credentials")
    return 0


def _list_users(database: Database) -> int:
    users = database.list_users()
    if not users:
        print("No users are currently registered.")
        return 0

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':>4}  {'Email':<32}  {'Roles':<24}  Created")
    print("-" * 80)
    for user in users:
        created = user.created_at.strftime("%Y-%m-%d %H:%M:%S %Z")
        roles = ", ".join(user.roles) or "<none>"
        print(f"{user.id:>4}  {user.email:<32}  {roles:<24}  {created}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    settings = _load_settings(args)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    database = _initialise_database(settings)

    if args.command == "serve":
        _serve(settings, database, host=args.host, port=args.port)
    elif args.command == "create-admin":
        return _create_admin(
            database,
            email=args.email,
            password=args.password,
            promote=args.promote,
        )
    elif args.command == "list-users":
        return _list_users(database)
    elif args.command == "init-db":
        print(f"Database initialisation complete: {settings.database_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
