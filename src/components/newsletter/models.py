"""
Newsletter component models.

Data models for subscriber registration and confirmation.

State machine (Subscriber): pending_confirmation → confirmed
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

# --- State Machine ---


class SubscriberStatus(Enum):
    """
    Subscriber status.

    State transitions:
    - pending_confirmation → confirmed (via confirmation link)
    - confirmed is terminal
    """

    PENDING = "pending_confirmation"  # Awaiting email confirmation
    CONFIRMED = "confirmed"  # Email confirmed, receives newsletters


VALID_TRANSITIONS: dict[SubscriberStatus, set[SubscriberStatus]] = {
    SubscriberStatus.PENDING: {SubscriberStatus.CONFIRMED},
    SubscriberStatus.CONFIRMED: set(),  # Terminal state
}


def can_transition(from_status: SubscriberStatus, to_status: SubscriberStatus) -> bool:
    """Check if a status transition is allowed."""
    return to_status in VALID_TRANSITIONS.get(from_status, set())


# --- Entity ---


@dataclass
class Subscriber:
    """Subscriber entity. Email is unique across all subscribers."""

    id: UUID
    email: str
    name: str
    status: SubscriberStatus = SubscriberStatus.PENDING
    subscribed_at: datetime = field(default_factory=lambda: datetime.now(UTC))


# --- Input Models ---


@dataclass(frozen=True)
class SubscribeInput:
    """Input for a new subscription (raw form values)."""

    email: str
    name: str


@dataclass(frozen=True)
class ConfirmInput:
    """Input for confirming a subscription (raw query value)."""

    token: str


# --- Validation ---


@dataclass(frozen=True)
class FieldError:
    """Validation error detail."""

    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True)
class ValidateEmailOutput:
    is_valid: bool
    normalized_email: str | None = None
    errors: list[FieldError] = field(default_factory=list)


@dataclass(frozen=True)
class ValidateNameOutput:
    is_valid: bool
    normalized_name: str | None = None
    errors: list[FieldError] = field(default_factory=list)


# --- Errors ---


class SubscribeErrorCode(Enum):
    VALIDATION = "validation"
    UNEXPECTED = "unexpected"
    EMAIL_DELIVERY = "email_delivery"


class ConfirmErrorCode(Enum):
    UNAUTHORIZED = "unauthorized"  # Unknown token
    ALREADY_CONFIRMED = "already_confirmed"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class SubscribeError:
    code: SubscribeErrorCode
    message: str
    cause: BaseException | None = None


@dataclass(frozen=True)
class ConfirmError:
    code: ConfirmErrorCode
    message: str
    cause: BaseException | None = None


# --- Output Models ---


@dataclass(frozen=True)
class SubscribeOutput:
    """
    Output from a subscription attempt.

    On EMAIL_DELIVERY errors the subscriber and token are already committed,
    so ``token`` and ``subscriber_id`` are still populated.
    """

    success: bool
    token: str | None = None
    subscriber_id: UUID | None = None
    created: bool = False  # False when an existing subscriber was reused
    error: SubscribeError | None = None


@dataclass(frozen=True)
class ConfirmOutput:
    success: bool
    subscriber_id: UUID | None = None
    error: ConfirmError | None = None


# --- Configuration ---


@dataclass(frozen=True)
class NewsletterConfig:
    """Newsletter service configuration."""

    base_url: str = "http://127.0.0.1:8000"
    confirmation_path: str = "/subscriptions/confirm"
    confirmation_subject: str = "Welcome!"
