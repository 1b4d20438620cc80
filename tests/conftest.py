from collections.abc import Iterator
from pathlib import Path
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite.pool import SQLiteConnectionPool
from src.adapters.sqlite_db import SQLiteUserRepo
from src.api.main import create_app
from src.app_shell.config import (
    ApplicationSettings,
    DatabaseSettings,
    EmailClientSettings,
    Settings,
)
from src.app_shell.context import AppContext
from src.components.auth import StoredCredentials
from tests.helpers import MIGRATIONS_DIR, TestUser


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "postbox.db")


@pytest.fixture
def pool(db_path: str) -> Iterator[SQLiteConnectionPool]:
    """Migrated database behind a small pool."""
    SQLiteMigrator(db_path, MIGRATIONS_DIR).run_migrations()
    pool = SQLiteConnectionPool(db_path, max_connections=3, acquire_timeout=0.5)
    yield pool
    pool.close()


@pytest.fixture
def settings(db_path: str) -> Settings:
    return Settings(
        application=ApplicationSettings(base_url="http://testserver", hashing_workers=1),
        database=DatabaseSettings(path=db_path, migrations_dir=MIGRATIONS_DIR),
        email_client=EmailClientSettings(backend="dev"),
    )


@pytest.fixture
def email_gateway() -> DevEmailAdapter:
    return DevEmailAdapter(log_body=False)


@pytest.fixture
def app(settings: Settings, email_gateway: DevEmailAdapter) -> FastAPI:
    return create_app(settings, email_gateway=email_gateway)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """Client with the lifespan running (context built, migrations applied)."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def app_context(app: FastAPI, client: TestClient) -> AppContext:
    context: AppContext = app.state.context
    return context


@pytest.fixture
def test_user(app_context: AppContext) -> TestUser:
    """Operator stored with a real Argon2id hash."""
    user = TestUser(user_id=uuid4(), username=f"user-{uuid4().hex[:8]}", password=uuid4().hex)
    SQLiteUserRepo(app_context.pool).save(
        StoredCredentials(
            user_id=user.user_id,
            username=user.username,
            password_hash=app_context.hasher.hash_password(user.password),
        )
    )
    return user

