import argparse
import getpass
import logging
import sys
from pathlib import Path
from uuid import uuid4

from src.adapters.auth.crypto import Argon2PasswordHasher
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite.pool import SQLiteConnectionPool
from src.adapters.sqlite_db import SQLiteUserRepo
from src.app_shell.config import Settings, load_settings
from src.components.auth import StoredCredentials
from src.core.errors import UniqueViolationError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")


def get_settings(args: argparse.Namespace) -> Settings:
    try:
        return load_settings(
            config_dir=Path(args.config_dir) if args.config_dir else None,
            environment=args.environment,
        )
    except (FileNotFoundError, ValueError) as e:
        logger.error("%s", e)
        sys.exit(1)


def handle_migrate(settings: Settings) -> None:
    db = settings.database
    Path(db.path).parent.mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(db.path, db.migrations_dir).run_migrations()
    print(f"Applied {len(applied)} migrations to {db.path}.")


def handle_create_user(settings: Settings, args: argparse.Namespace) -> None:
    password = args.password or getpass.getpass(f"Password for {args.username}: ")
    if not password:
        logger.error("A password is required.")
        sys.exit(1)

    hasher = Argon2PasswordHasher()
    db = settings.database
    pool = SQLiteConnectionPool(db.path, max_connections=1, busy_timeout_ms=db.busy_timeout_ms)
    try:
        repo = SQLiteUserRepo(pool)
        user = StoredCredentials(
            user_id=uuid4(),
            username=args.username,
            password_hash=hasher.hash_password(password),
        )
        try:
            repo.save(user)
        except UniqueViolationError:
            logger.error("User %s already exists.", args.username)
            sys.exit(1)
    finally:
        pool.close()
    print(f"Created user '{user.username}' ({user.user_id}).")


def handle_serve(settings: Settings) -> None:
    import uvicorn

    from src.api.main import create_app

    # The app gets the settings resolved from --config-dir/--environment
    uvicorn.run(
        create_app(settings),
        host=settings.application.host,
        port=settings.application.port,
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Postbox CLI")
    parser.add_argument("--config-dir", help="Directory holding base.yaml and overrides")
    parser.add_argument("--environment", help="local or production (default: APP_ENVIRONMENT)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # create-user
    user_parser = subparsers.add_parser("create-user", help="Create a publishing operator")
    user_parser.add_argument("username", help="Login name of the operator")
    user_parser.add_argument("--password", help="Password (prompted when omitted)")

    # serve
    subparsers.add_parser("serve", help="Run the HTTP server")

    args = parser.parse_args(argv)
    settings = get_settings(args)

    if args.command == "migrate":
        handle_migrate(settings)
    elif args.command == "create-user":
        handle_create_user(settings, args)
    elif args.command == "serve":
        handle_serve(settings)


if __name__ == "__main__":
    main()
