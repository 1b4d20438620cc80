"""
Password hashing adapters.

Argon2id with fixed cost parameters, plus the dedicated worker pool that
verification runs on.
"""

from __future__ import annotations

import asyncio
import functools
import secrets
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from src.core.errors import UnexpectedError

T = TypeVar("T")

ARGON2_MEMORY_COST_KIB = 15000
ARGON2_TIME_COST = 2
ARGON2_PARALLELISM = 1


class Argon2PasswordHasher:
    """
    Argon2id hasher (m=15000 KiB, t=2, p=1).

    ``fallback_hash`` is a hash of a random secret produced with the same
    parameters. Verifying against it costs the same as verifying a real
    operator's hash and never succeeds.
    """

    def __init__(
        self,
        memory_cost: int = ARGON2_MEMORY_COST_KIB,
        time_cost: int = ARGON2_TIME_COST,
        parallelism: int = ARGON2_PARALLELISM,
    ) -> None:
        self.ph = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            type=Type.ID,
        )
        self.fallback_hash = self.hash_password(secrets.token_urlsafe(32))

    def hash_password(self, password: str) -> str:
        return str(self.ph.hash(password))

    def verify_password(self, password: str, hash_str: str) -> bool:
        """
        True on match, False on mismatch.

        Raises UnexpectedError when the stored hash cannot be parsed.
        """
        try:
            return bool(self.ph.verify(hash_str, password))
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError) as e:
            raise UnexpectedError("Failed to parse hash in PHC string format.") from e


class HashingWorkerPool:
    """
    Thread pool reserved for password hashing.

    Keeps Argon2 work off the event loop and out of the request threadpool.
    """

    def __init__(self, max_workers: int = 2) -> None:
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="argon2"
        )

    async def run(self, fn: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args))

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
