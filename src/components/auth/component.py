import asyncio
import logging
from uuid import UUID

from src.core.errors import UnexpectedError

from .models import (
    AuthError,
    AuthErrorCode,
    AuthOutput,
    ValidateCredentialsInput,
)
from .ports import HashingPoolPort, PasswordHasherPort, UserRepoPort

logger = logging.getLogger(__name__)

AUTHENTICATION_FAILED = "Authentication failed"


def _invalid() -> AuthOutput:
    return AuthOutput(
        success=False,
        error=AuthError(AuthErrorCode.INVALID_CREDENTIALS, AUTHENTICATION_FAILED),
    )


async def run_validate_credentials(
    inp: ValidateCredentialsInput,
    *,
    user_repo: UserRepoPort,
    hasher: PasswordHasherPort,
    hashing_pool: HashingPoolPort,
) -> AuthOutput:
    """
    Check a username/password pair against the stored operator credentials.

    An unknown username is verified against the hasher's fallback hash, so it
    costs the same as a wrong password and fails the same way.
    """
    credentials = inp.credentials
    user_id: UUID | None = None
    expected_hash = hasher.fallback_hash

    try:
        stored = await asyncio.to_thread(user_repo.get_stored_credentials, credentials.username)
    except UnexpectedError as e:
        return AuthOutput(
            success=False,
            error=AuthError(
                AuthErrorCode.UNEXPECTED, "Failed to retrieve stored credentials.", cause=e
            ),
        )

    if stored is not None:
        user_id = stored.user_id
        expected_hash = stored.password_hash

    try:
        matched = await hashing_pool.run(
            hasher.verify_password, credentials.password, expected_hash
        )
    except UnexpectedError as e:
        return AuthOutput(
            success=False,
            error=AuthError(AuthErrorCode.UNEXPECTED, "Failed to verify password hash.", cause=e),
        )

    if not matched or user_id is None:
        logger.info("Rejected credentials for username %r", credentials.username)
        return _invalid()

    return AuthOutput(user_id=user_id, success=True)


async def run(
    inp: ValidateCredentialsInput,
    *,
    user_repo: UserRepoPort,
    hasher: PasswordHasherPort,
    hashing_pool: HashingPoolPort,
) -> AuthOutput:
    if isinstance(inp, ValidateCredentialsInput):
        return await run_validate_credentials(
            inp, user_repo=user_repo, hasher=hasher, hashing_pool=hashing_pool
        )
    raise ValueError(f"Unknown input type: {type(inp)}")
