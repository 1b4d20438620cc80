"""
SQLite Database Adapter.

Implements the subscriber, token and operator repositories using SQLite.
Designed to be Postgres-compatible (uses standard SQL patterns).

Repositories work in two modes:
- bound to a unit-of-work connection: every statement joins that
  transaction and nothing is committed here
- standalone (pool only): each call checks out a connection, runs in
  autocommit mode and returns it
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any
from uuid import UUID

from src.adapters.sqlite.pool import SQLiteConnectionPool
from src.components.auth.models import StoredCredentials
from src.components.newsletter.models import Subscriber, SubscriberStatus
from src.core.errors import UnexpectedError, UniqueViolationError

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s) if s else None


@contextmanager
def translate_errors(context: str) -> Iterator[None]:
    """Re-raise driver errors as service errors, keeping the driver error as cause."""
    try:
        yield
    except sqlite3.IntegrityError as e:
        if "UNIQUE" in str(e) or "PRIMARY KEY" in str(e):
            raise UniqueViolationError(context) from e
        raise UnexpectedError(context) from e
    except sqlite3.Error as e:
        raise UnexpectedError(context) from e


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(
        self,
        pool: SQLiteConnectionPool,
        connection: sqlite3.Connection | None = None,
    ):
        self.pool = pool
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn
        return self.pool.acquire()

    def _release(self, conn: sqlite3.Connection) -> None:
        if self._external_conn is None:
            self.pool.release(conn)


# -----------------------------------------------------------------------------
# Subscriptions
# -----------------------------------------------------------------------------


class SQLiteSubscriptionRepo(SQLiteRepoBase):
    def find_id_by_email(self, email: str) -> UUID | None:
        conn = self._get_conn()
        try:
            with translate_errors("Failed to look up subscriber by email"):
                row = conn.execute(
                    "SELECT id FROM subscriptions WHERE email = ?", (email,)
                ).fetchone()
            return UUID(row["id"]) if row else None
        finally:
            self._release(conn)

    def get_by_id(self, subscriber_id: UUID) -> Subscriber | None:
        conn = self._get_conn()
        try:
            with translate_errors("Failed to load subscriber"):
                row = conn.execute(
                    "SELECT * FROM subscriptions WHERE id = ?", (str(subscriber_id),)
                ).fetchone()
            return self._map_row(row) if row else None
        finally:
            self._release(conn)

    def get_by_email(self, email: str) -> Subscriber | None:
        conn = self._get_conn()
        try:
            with translate_errors("Failed to load subscriber"):
                row = conn.execute(
                    "SELECT * FROM subscriptions WHERE email = ?", (email,)
                ).fetchone()
            return self._map_row(row) if row else None
        finally:
            self._release(conn)

    def insert(self, subscriber: Subscriber) -> Subscriber:
        conn = self._get_conn()
        try:
            with translate_errors("Failed to insert subscriber"):
                conn.execute(
                    """
                    INSERT INTO subscriptions (id, email, name, subscribed_at, status)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        str(subscriber.id),
                        subscriber.email,
                        subscriber.name,
                        subscriber.subscribed_at.isoformat(),
                        subscriber.status.value,
                    ),
                )
            return subscriber
        finally:
            self._release(conn)

    def get_status(self, subscriber_id: UUID) -> SubscriberStatus | None:
        conn = self._get_conn()
        try:
            with translate_errors("Failed to read subscriber status"):
                row = conn.execute(
                    "SELECT status FROM subscriptions WHERE id = ?", (str(subscriber_id),)
                ).fetchone()
            return SubscriberStatus(row["status"]) if row else None
        finally:
            self._release(conn)

    def mark_confirmed(self, subscriber_id: UUID) -> bool:
        """
        Move a pending subscriber to confirmed.

        Returns False when the row was not pending (already confirmed or gone),
        so a concurrent second confirmation cannot also succeed.
        """
        conn = self._get_conn()
        try:
            with translate_errors("Failed to update subscriber status"):
                cursor = conn.execute(
                    "UPDATE subscriptions SET status = ? WHERE id = ? AND status = ?",
                    (
                        SubscriberStatus.CONFIRMED.value,
                        str(subscriber_id),
                        SubscriberStatus.PENDING.value,
                    ),
                )
            return cursor.rowcount == 1
        finally:
            self._release(conn)

    def list_confirmed_emails(self) -> list[str]:
        """Stored emails of confirmed subscribers, unvalidated."""
        conn = self._get_conn()
        try:
            with translate_errors("Failed to get confirmed subscribers from the database"):
                rows = conn.execute(
                    "SELECT email FROM subscriptions WHERE status = ? ORDER BY subscribed_at",
                    (SubscriberStatus.CONFIRMED.value,),
                ).fetchall()
            return [r["email"] for r in rows]
        finally:
            self._release(conn)

    def count_all(self) -> int:
        conn = self._get_conn()
        try:
            with translate_errors("Failed to count subscribers"):
                row = conn.execute("SELECT COUNT(*) AS n FROM subscriptions").fetchone()
            return int(row["n"])
        finally:
            self._release(conn)

    def _map_row(self, row: dict[str, Any]) -> Subscriber:
        subscribed_at = parse_dt(row["subscribed_at"])
        assert subscribed_at is not None
        return Subscriber(
            id=UUID(row["id"]),
            email=row["email"],
            name=row["name"],
            status=SubscriberStatus(row["status"]),
            subscribed_at=subscribed_at,
        )


# -----------------------------------------------------------------------------
# Subscription tokens
# -----------------------------------------------------------------------------


class SQLiteSubscriptionTokenRepo(SQLiteRepoBase):
    def store(self, token: str, subscriber_id: UUID) -> None:
        conn = self._get_conn()
        try:
            with translate_errors("Failed to insert subscription token"):
                conn.execute(
                    """INSERT INTO subscription_tokens (subscription_token, subscriber_id)
                    VALUES (?, ?)""",
                    (token, str(subscriber_id)),
                )
        finally:
            self._release(conn)

    def get_token_for_subscriber(self, subscriber_id: UUID) -> str | None:
        conn = self._get_conn()
        try:
            with translate_errors("Failed to read subscription token"):
                row = conn.execute(
                    "SELECT subscription_token FROM subscription_tokens WHERE subscriber_id = ?",
                    (str(subscriber_id),),
                ).fetchone()
            return row["subscription_token"] if row else None
        finally:
            self._release(conn)

    def get_subscriber_id(self, token: str) -> UUID | None:
        conn = self._get_conn()
        try:
            with translate_errors("Failed to resolve subscription token"):
                row = conn.execute(
                    "SELECT subscriber_id FROM subscription_tokens WHERE subscription_token = ?",
                    (token,),
                ).fetchone()
            return UUID(row["subscriber_id"]) if row else None
        finally:
            self._release(conn)


# -----------------------------------------------------------------------------
# Operators
# -----------------------------------------------------------------------------


class SQLiteUserRepo(SQLiteRepoBase):
    def get_stored_credentials(self, username: str) -> StoredCredentials | None:
        conn = self._get_conn()
        try:
            with translate_errors("Failed to retrieve stored credentials"):
                row = conn.execute(
                    "SELECT user_id, username, password_hash FROM users WHERE username = ?",
                    (username,),
                ).fetchone()
            if not row:
                return None
            return StoredCredentials(
                user_id=UUID(row["user_id"]),
                username=row["username"],
                password_hash=row["password_hash"],
            )
        finally:
            self._release(conn)

    def save(self, user: StoredCredentials) -> StoredCredentials:
        conn = self._get_conn()
        try:
            with translate_errors("Failed to store operator"):
                conn.execute(
                    """
                    INSERT INTO users (user_id, username, password_hash)
                    VALUES (?, ?, ?)
                    ON CONFLICT(user_id) DO UPDATE SET
                        username=excluded.username,
                        password_hash=excluded.password_hash
                    """,
                    (str(user.user_id), user.username, user.password_hash),
                )
            return user
        finally:
            self._release(conn)


# -----------------------------------------------------------------------------
# Unit of Work
# -----------------------------------------------------------------------------


class SQLiteUnitOfWork:
    """
    SQLite Unit of Work implementation.

    Checks a connection out of the pool and opens a ``BEGIN IMMEDIATE``
    transaction, so the write lock is held from the first read. Leaving the
    block without ``commit()`` rolls everything back.
    """

    def __init__(self, pool: SQLiteConnectionPool):
        self.pool = pool
        self._conn: sqlite3.Connection | None = None

        self._subscriptions: SQLiteSubscriptionRepo | None = None
        self._tokens: SQLiteSubscriptionTokenRepo | None = None
        self._users: SQLiteUserRepo | None = None

    def __enter__(self) -> SQLiteUnitOfWork:
        conn = self.pool.acquire()
        try:
            with translate_errors("Failed to begin transaction"):
                conn.execute("BEGIN IMMEDIATE")
        except UnexpectedError:
            self.pool.release(conn)
            raise
        self._conn = conn
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if self._conn:
            self.rollback()
            self.pool.release(self._conn)
            self._conn = None
        self._subscriptions = None
        self._tokens = None
        self._users = None

    def commit(self) -> None:
        if self._conn:
            with translate_errors("Failed to commit transaction"):
                self._conn.commit()

    def rollback(self) -> None:
        if self._conn and self._conn.in_transaction:
            self._conn.rollback()

    @property
    def subscriptions(self) -> SQLiteSubscriptionRepo:
        if self._subscriptions is None:
            self._subscriptions = SQLiteSubscriptionRepo(self.pool, self._conn)
        return self._subscriptions

    @property
    def tokens(self) -> SQLiteSubscriptionTokenRepo:
        if self._tokens is None:
            self._tokens = SQLiteSubscriptionTokenRepo(self.pool, self._conn)
        return self._tokens

    @property
    def users(self) -> SQLiteUserRepo:
        if self._users is None:
            self._users = SQLiteUserRepo(self.pool, self._conn)
        return self._users
