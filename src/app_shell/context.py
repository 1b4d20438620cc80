from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from src.adapters.auth.crypto import Argon2PasswordHasher, HashingWorkerPool
from src.adapters.clock import SystemClock
from src.adapters.dev_email import DevEmailAdapter
from src.adapters.http_email import HttpEmailGateway
from src.adapters.sqlite.pool import SQLiteConnectionPool
from src.adapters.sqlite_db import SQLiteSubscriptionRepo, SQLiteUnitOfWork, SQLiteUserRepo
from src.app_shell.config import EmailClientSettings, Settings
from src.components.newsletter import NewsletterConfig
from src.core.ports.email import EmailAddress, EmailGatewayPort


def build_email_gateway(settings: EmailClientSettings) -> EmailGatewayPort:
    if settings.backend == "dev":
        return DevEmailAdapter()
    return HttpEmailGateway(
        base_url=settings.base_url,
        sender=EmailAddress(settings.sender_email, settings.sender_name),
        authorization_token=settings.authorization_token,
        timeout_seconds=settings.timeout_seconds,
    )


@dataclass
class AppContext:
    """Process-wide resources, built once in the app lifespan."""

    settings: Settings
    pool: SQLiteConnectionPool
    hasher: Argon2PasswordHasher
    hashing_pool: HashingWorkerPool
    email_gateway: EmailGatewayPort
    clock: SystemClock
    newsletter_config: NewsletterConfig

    @classmethod
    def create(
        cls,
        settings: Settings,
        email_gateway: EmailGatewayPort | None = None,
    ) -> AppContext:
        db = settings.database
        Path(db.path).parent.mkdir(parents=True, exist_ok=True)

        pool = SQLiteConnectionPool(
            db.path,
            max_connections=db.max_connections,
            acquire_timeout=db.acquire_timeout_seconds,
            busy_timeout_ms=db.busy_timeout_ms,
        )
        return cls(
            settings=settings,
            pool=pool,
            hasher=Argon2PasswordHasher(),
            hashing_pool=HashingWorkerPool(settings.application.hashing_workers),
            email_gateway=email_gateway or build_email_gateway(settings.email_client),
            clock=SystemClock(),
            newsletter_config=NewsletterConfig(base_url=settings.application.base_url),
        )

    def unit_of_work(self) -> SQLiteUnitOfWork:
        return SQLiteUnitOfWork(self.pool)

    @property
    def user_repo(self) -> SQLiteUserRepo:
        return SQLiteUserRepo(self.pool)

    @property
    def subscriptions(self) -> SQLiteSubscriptionRepo:
        return SQLiteSubscriptionRepo(self.pool)

    def close(self) -> None:
        self.hashing_pool.shutdown()
        if isinstance(self.email_gateway, HttpEmailGateway):
            self.email_gateway.close()
        self.pool.close()
