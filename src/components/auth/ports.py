from collections.abc import Callable
from typing import Any, Protocol, TypeVar

from .models import StoredCredentials

T = TypeVar("T")


class UserRepoPort(Protocol):
    def get_stored_credentials(self, username: str) -> StoredCredentials | None: ...


class PasswordHasherPort(Protocol):
    @property
    def fallback_hash(self) -> str:
        """Hash with production cost parameters that matches no password."""
        ...

    def verify_password(self, password: str, hash_str: str) -> bool: ...


class HashingPoolPort(Protocol):
    """Executor dedicated to password hashing."""

    async def run(self, fn: Callable[..., T], *args: Any) -> T: ...
