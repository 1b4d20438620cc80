from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class StoredCredentials:
    """Operator credential row as read from the store."""

    user_id: UUID
    username: str
    password_hash: str = field(repr=False)


@dataclass(frozen=True)
class ValidateCredentialsInput:
    credentials: Credentials


class AuthErrorCode(Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class AuthError:
    code: AuthErrorCode
    message: str
    cause: BaseException | None = None


@dataclass(frozen=True)
class AuthOutput:
    user_id: UUID | None = None
    success: bool = False
    error: AuthError | None = None
