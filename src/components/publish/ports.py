"""Publish component port definitions - protocols for dependencies."""

from typing import Protocol


class ConfirmedSubscribersPort(Protocol):
    """Read side of the subscriber store used by the dispatcher."""

    def list_confirmed_emails(self) -> list[str]:
        """Stored email of every confirmed subscriber, as persisted."""
        ...
