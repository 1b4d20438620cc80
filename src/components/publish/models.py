"""Publish component models - frozen dataclass inputs and outputs."""

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from src.components.auth.models import Credentials


@dataclass(frozen=True)
class PublishInput:
    """One newsletter issue, plus the operator credentials that authorize it."""

    title: str
    html: str
    text: str
    credentials: Credentials


class PublishErrorCode(Enum):
    UNAUTHORIZED = "unauthorized"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class PublishError:
    code: PublishErrorCode
    message: str
    cause: BaseException | None = None


@dataclass(frozen=True)
class SkippedRecipient:
    """A confirmed subscriber left out because the stored email is malformed."""

    email: str
    reason: str


@dataclass(frozen=True)
class PublishOutput:
    """
    Output for a publish attempt.

    ``sent`` counts deliveries made before any abort.
    """

    success: bool
    user_id: UUID | None = None
    sent: int = 0
    skipped: list[SkippedRecipient] = field(default_factory=list)
    error: PublishError | None = None
