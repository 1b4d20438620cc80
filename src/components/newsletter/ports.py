"""
Newsletter component ports.

Protocol interfaces for subscriber registration and confirmation.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from types import TracebackType
from typing import Protocol
from uuid import UUID

from src.components.newsletter.models import Subscriber, SubscriberStatus


class SubscriptionRepoPort(Protocol):
    """Subscriber persistence. Email uniqueness is enforced by the store."""

    def find_id_by_email(self, email: str) -> UUID | None: ...

    def insert(self, subscriber: Subscriber) -> Subscriber:
        """Insert a subscriber. Raises UniqueViolationError if the email exists."""
        ...

    def get_status(self, subscriber_id: UUID) -> SubscriberStatus | None: ...

    def mark_confirmed(self, subscriber_id: UUID) -> bool:
        """Pending → confirmed. Returns False if the row was not pending."""
        ...


class SubscriptionTokenRepoPort(Protocol):
    def store(self, token: str, subscriber_id: UUID) -> None: ...

    def get_token_for_subscriber(self, subscriber_id: UUID) -> str | None: ...

    def get_subscriber_id(self, token: str) -> UUID | None: ...


class NewsletterUnitOfWorkPort(Protocol):
    """
    One atomic transaction over subscriptions and tokens.

    Exiting without commit() rolls back.
    """

    @property
    def subscriptions(self) -> SubscriptionRepoPort: ...

    @property
    def tokens(self) -> SubscriptionTokenRepoPort: ...

    def commit(self) -> None: ...

    def __enter__(self) -> NewsletterUnitOfWorkPort: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None: ...


UnitOfWorkFactory = Callable[[], NewsletterUnitOfWorkPort]


class TimePort(Protocol):
    """Port for time operations - enables deterministic testing."""

    def now_utc(self) -> datetime: ...
