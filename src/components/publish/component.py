"""
Publish component - sends a newsletter issue to confirmed subscribers.

Delivery is sequential. A subscriber whose stored email no longer validates
is skipped with a warning; the first gateway failure aborts the issue.
"""

import asyncio
import logging

from src.components.auth import (
    AuthErrorCode,
    HashingPoolPort,
    PasswordHasherPort,
    UserRepoPort,
    ValidateCredentialsInput,
    run_validate_credentials,
)
from src.components.newsletter import validate_email
from src.components.publish.models import (
    PublishError,
    PublishErrorCode,
    PublishInput,
    PublishOutput,
    SkippedRecipient,
)
from src.components.publish.ports import ConfirmedSubscribersPort
from src.core.errors import EmailDeliveryError, UnexpectedError
from src.core.ports.email import EmailGatewayPort

logger = logging.getLogger(__name__)


async def run_publish(
    inp: PublishInput,
    *,
    subscribers: ConfirmedSubscribersPort,
    email_gateway: EmailGatewayPort,
    user_repo: UserRepoPort,
    hasher: PasswordHasherPort,
    hashing_pool: HashingPoolPort,
) -> PublishOutput:
    """Authenticate the operator, then deliver the issue."""
    auth = await run_validate_credentials(
        ValidateCredentialsInput(inp.credentials),
        user_repo=user_repo,
        hasher=hasher,
        hashing_pool=hashing_pool,
    )
    if not auth.success:
        assert auth.error is not None
        if auth.error.code == AuthErrorCode.INVALID_CREDENTIALS:
            return PublishOutput(
                success=False,
                error=PublishError(PublishErrorCode.UNAUTHORIZED, auth.error.message),
            )
        return PublishOutput(
            success=False,
            error=PublishError(
                PublishErrorCode.UNEXPECTED, auth.error.message, cause=auth.error.cause
            ),
        )

    logger.info("Publishing newsletter issue %r for user %s", inp.title, auth.user_id)

    try:
        stored_emails = await asyncio.to_thread(subscribers.list_confirmed_emails)
    except UnexpectedError as e:
        return PublishOutput(
            success=False,
            user_id=auth.user_id,
            error=PublishError(
                PublishErrorCode.UNEXPECTED,
                "Failed to get confirmed subscribers from the database.",
                cause=e,
            ),
        )

    sent = 0
    skipped: list[SkippedRecipient] = []
    for stored in stored_emails:
        check = validate_email(stored)
        if not check.is_valid or check.normalized_email is None:
            reason = check.errors[0].message if check.errors else "invalid email"
            logger.warning(
                "Skipping a confirmed subscriber. Their stored contact details are invalid. "
                "Cause: %s",
                reason,
            )
            skipped.append(SkippedRecipient(email=stored, reason=reason))
            continue

        recipient = check.normalized_email
        result = await asyncio.to_thread(
            email_gateway.send_email, recipient, inp.title, inp.html, inp.text
        )
        if not result.ok:
            err = UnexpectedError(f"Failed to send newsletter issue to {recipient}")
            err.__cause__ = EmailDeliveryError(recipient, result.error or "unknown error")
            return PublishOutput(
                success=False,
                user_id=auth.user_id,
                sent=sent,
                skipped=skipped,
                error=PublishError(PublishErrorCode.UNEXPECTED, err.message, cause=err),
            )
        sent += 1

    logger.info("Newsletter issue %r delivered to %d subscribers", inp.title, sent)
    return PublishOutput(success=True, user_id=auth.user_id, sent=sent, skipped=skipped)


async def run(
    inp: PublishInput,
    *,
    subscribers: ConfirmedSubscribersPort,
    email_gateway: EmailGatewayPort,
    user_repo: UserRepoPort,
    hasher: PasswordHasherPort,
    hashing_pool: HashingPoolPort,
) -> PublishOutput:
    """Main dispatcher - routes to appropriate handler based on input type."""
    if isinstance(inp, PublishInput):
        return await run_publish(
            inp,
            subscribers=subscribers,
            email_gateway=email_gateway,
            user_repo=user_repo,
            hasher=hasher,
            hashing_pool=hashing_pool,
        )
    raise TypeError(f"Unknown input type: {type(inp)}")
