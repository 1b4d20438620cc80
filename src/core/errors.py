"""
Shared error taxonomy.

Storage and delivery failures are raised as ServiceError subclasses and
wrapped with a short description of the step that failed
(``raise UnexpectedError("Failed to ...") from exc``). Components catch them
at their boundary and return them inside their output dataclass; only the
API layer decides what the client gets to see.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base error carrying a contextual message over its cause."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(ServiceError):
    """Malformed user input. The message is safe to return verbatim."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class UnexpectedError(ServiceError):
    """Infrastructure failure. Logged with its chain, never shown to clients."""


class StoreTokenError(UnexpectedError):
    """A database error was raised while storing a subscription token."""

    def __init__(
        self,
        message: str = (
            "A database error was encountered while trying to store a subscription token"
        ),
    ) -> None:
        super().__init__(message)


class UniqueViolationError(UnexpectedError):
    """Insert rejected by a uniqueness constraint (lost a create race)."""


class PoolTimeoutError(UnexpectedError):
    """No pooled connection became available within the acquisition timeout."""


class EmailDeliveryError(ServiceError):
    """The email gateway did not accept a message."""

    def __init__(self, recipient: str, reason: str) -> None:
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"Failed to send email to {recipient}: {reason}")


def iter_causes(exc: BaseException) -> list[BaseException]:
    """Return ``exc`` followed by every explicit or implicit cause."""
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def error_chain(exc: BaseException) -> str:
    """
    Render an exception and its causes for log records.

    Example:
        Failed to insert new subscriber in the database.

        Caused by:
            UNIQUE constraint failed: subscriptions.email
    """
    head, *causes = iter_causes(exc)
    lines = [f"{head}\n"]
    for cause in causes:
        lines.append(f"Caused by:\n\t{cause}")
    return "\n".join(lines)
