"""
Newsletter subscription component.

Functional core for subscriber registration and confirmation.
Implements the double opt-in flow.

Key behaviors:
- Input validated before any storage access
- Create-or-reuse runs in one transaction; re-subscribing returns the
  already issued token
- The email uniqueness constraint settles concurrent first subscriptions;
  the losing call re-reads and returns the winner's token
- Confirmation email is sent after commit; a delivery failure leaves the
  committed rows in place and is reported separately
- Confirmation is a one-way pending → confirmed transition

Invariants:
- At most one token per subscriber
- No partial subscriber or orphaned token survives a failed transaction
- A confirmed subscriber is never confirmed again
"""

from __future__ import annotations

import logging
import re
import secrets
import string
import unicodedata
from datetime import UTC, datetime
from uuid import UUID, uuid4

from src.components.newsletter.models import (
    ConfirmError,
    ConfirmErrorCode,
    ConfirmInput,
    ConfirmOutput,
    FieldError,
    NewsletterConfig,
    SubscribeError,
    SubscribeErrorCode,
    SubscribeInput,
    SubscribeOutput,
    Subscriber,
    SubscriberStatus,
    ValidateEmailOutput,
    ValidateNameOutput,
    can_transition,
)
from src.components.newsletter.ports import TimePort, UnitOfWorkFactory
from src.core.errors import (
    EmailDeliveryError,
    StoreTokenError,
    UnexpectedError,
    UniqueViolationError,
    error_chain,
)
from src.core.ports.email import EmailGatewayPort

logger = logging.getLogger(__name__)

# --- Email Validation Regex (RFC 5322 simplified) ---

EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

MAX_EMAIL_LENGTH = 254
MAX_NAME_LENGTH = 256
FORBIDDEN_NAME_CHARACTERS = frozenset('/()"<>\\{}')

TOKEN_ALPHABET = string.ascii_letters + string.digits
TOKEN_LENGTH = 25


# --- Pure Functions (Functional Core) ---


def validate_email(email: str) -> ValidateEmailOutput:
    """
    Validate an email address format.

    Also used to re-validate stored addresses before a newsletter send.

    Returns:
        ValidateEmailOutput with the trimmed, lower-cased address when valid
    """
    normalized = email.strip().lower() if email else ""

    if not normalized:
        return ValidateEmailOutput(
            is_valid=False,
            errors=[FieldError("EMPTY_EMAIL", "Email address is required", "email")],
        )

    if len(normalized) > MAX_EMAIL_LENGTH:
        return ValidateEmailOutput(
            is_valid=False,
            errors=[FieldError("EMAIL_TOO_LONG", "Email address is too long", "email")],
        )

    if not EMAIL_REGEX.match(normalized):
        return ValidateEmailOutput(
            is_valid=False,
            errors=[
                FieldError("INVALID_FORMAT", f"{email} is not a valid subscriber email.", "email")
            ],
        )

    return ValidateEmailOutput(is_valid=True, normalized_email=normalized)


def validate_name(name: str) -> ValidateNameOutput:
    """
    Validate a subscriber display name.

    Rules: not blank, at most 256 characters, no control characters and
    none of ``/()"<>\\{}``.
    """
    normalized = name.strip() if name else ""

    if not normalized:
        return ValidateNameOutput(
            is_valid=False,
            errors=[FieldError("EMPTY_NAME", "Subscriber name is required", "name")],
        )

    if len(normalized) > MAX_NAME_LENGTH:
        return ValidateNameOutput(
            is_valid=False,
            errors=[FieldError("NAME_TOO_LONG", "Subscriber name is too long", "name")],
        )

    for ch in normalized:
        if ch in FORBIDDEN_NAME_CHARACTERS or unicodedata.category(ch) == "Cc":
            return ValidateNameOutput(
                is_valid=False,
                errors=[
                    FieldError(
                        "INVALID_CHARACTERS",
                        f"{name!r} is not a valid subscriber name.",
                        "name",
                    )
                ],
            )

    return ValidateNameOutput(is_valid=True, normalized_name=normalized)


def generate_subscription_token() -> str:
    """25 random alphanumeric characters (~148 bits) from the OS CSPRNG."""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


def sanitize_token(raw_token: str) -> str:
    """Keep only the characters a subscription token can contain."""
    return "".join(ch for ch in raw_token if ch in TOKEN_ALPHABET)


def build_confirmation_url(
    base_url: str,
    token: str,
    path: str = "/subscriptions/confirm",
) -> str:
    base = base_url.rstrip("/")
    return f"{base}{path}?subscription_token={token}"


def build_confirmation_email(confirmation_url: str) -> tuple[str, str]:
    """Return the (html, text) bodies of the confirmation email."""
    html_body = (
        "Welcome to our newsletter!<br />"
        f'Click <a href="{confirmation_url}">here</a> to confirm your subscription.'
    )
    text_body = (
        f"Welcome to our newsletter!\nVisit {confirmation_url} to confirm your subscription."
    )
    return html_body, text_body


# --- Transactional steps ---


def _register(
    uow_factory: UnitOfWorkFactory,
    email: str,
    name: str,
    now: datetime,
) -> tuple[str, UUID, bool]:
    """
    Create-or-reuse in a single transaction.

    Returns (token, subscriber_id, created). Raises UniqueViolationError when
    another transaction inserted the same email first.
    """
    with uow_factory() as uow:
        try:
            existing_id = uow.subscriptions.find_id_by_email(email)
        except UnexpectedError as e:
            raise UnexpectedError(
                "Failed to check if subscriber is already in the database."
            ) from e

        created = existing_id is None
        if existing_id is not None:
            subscriber_id = existing_id
            try:
                token = uow.tokens.get_token_for_subscriber(subscriber_id)
            except UnexpectedError as e:
                raise UnexpectedError(
                    "Failed to retrieve subscriber token from the database."
                ) from e
        else:
            subscriber = Subscriber(
                id=uuid4(),
                email=email,
                name=name,
                status=SubscriberStatus.PENDING,
                subscribed_at=now,
            )
            try:
                uow.subscriptions.insert(subscriber)
            except UniqueViolationError:
                raise
            except UnexpectedError as e:
                raise UnexpectedError("Failed to insert new subscriber in the database.") from e
            subscriber_id = subscriber.id
            token = None

        if token is None:
            token = generate_subscription_token()
            try:
                uow.tokens.store(token, subscriber_id)
            except UnexpectedError as e:
                raise StoreTokenError() from e

        try:
            uow.commit()
        except UnexpectedError as e:
            raise UnexpectedError(
                "Failed to commit SQL transaction to store a new subscriber."
            ) from e

    return token, subscriber_id, created


# --- Run Handlers ---


def run_subscribe(
    inp: SubscribeInput,
    *,
    uow_factory: UnitOfWorkFactory,
    email_gateway: EmailGatewayPort,
    config: NewsletterConfig | None = None,
    clock: TimePort | None = None,
) -> SubscribeOutput:
    """
    Register a subscriber (or reuse an existing one) and mail the confirmation link.
    """
    cfg = config or NewsletterConfig()

    name_check = validate_name(inp.name)
    if not name_check.is_valid or name_check.normalized_name is None:
        return SubscribeOutput(
            success=False,
            error=SubscribeError(SubscribeErrorCode.VALIDATION, name_check.errors[0].message),
        )

    email_check = validate_email(inp.email)
    if not email_check.is_valid or email_check.normalized_email is None:
        return SubscribeOutput(
            success=False,
            error=SubscribeError(SubscribeErrorCode.VALIDATION, email_check.errors[0].message),
        )

    email = email_check.normalized_email
    now = clock.now_utc() if clock else datetime.now(UTC)
    logger.info("Adding a new subscriber")

    try:
        try:
            token, subscriber_id, created = _register(
                uow_factory, email, name_check.normalized_name, now
            )
        except UniqueViolationError:
            # Lost the race for this email; the winner's rows are committed now
            logger.info("Concurrent subscription for the same email, re-reading")
            token, subscriber_id, created = _register(
                uow_factory, email, name_check.normalized_name, now
            )
    except UnexpectedError as e:
        return SubscribeOutput(
            success=False,
            error=SubscribeError(SubscribeErrorCode.UNEXPECTED, e.message, cause=e),
        )

    confirmation_url = build_confirmation_url(cfg.base_url, token, cfg.confirmation_path)
    html_body, text_body = build_confirmation_email(confirmation_url)
    result = email_gateway.send_email(email, cfg.confirmation_subject, html_body, text_body)

    if not result.ok:
        err = UnexpectedError("Failed to send a confirmation email.")
        err.__cause__ = EmailDeliveryError(email, result.error or "unknown error")
        logger.debug("Confirmation email not delivered:\n%s", error_chain(err))
        return SubscribeOutput(
            success=False,
            token=token,
            subscriber_id=subscriber_id,
            created=created,
            error=SubscribeError(SubscribeErrorCode.EMAIL_DELIVERY, err.message, cause=err),
        )

    return SubscribeOutput(
        success=True,
        token=token,
        subscriber_id=subscriber_id,
        created=created,
    )


def run_confirm(
    inp: ConfirmInput,
    *,
    uow_factory: UnitOfWorkFactory,
) -> ConfirmOutput:
    """
    Redeem a confirmation token.

    Unknown token → UNAUTHORIZED; already confirmed → ALREADY_CONFIRMED.
    """
    token = sanitize_token(inp.token)
    if not token:
        return ConfirmOutput(
            success=False,
            error=ConfirmError(ConfirmErrorCode.UNAUTHORIZED, "Unknown subscription token"),
        )

    try:
        with uow_factory() as uow:
            try:
                subscriber_id = uow.tokens.get_subscriber_id(token)
            except UnexpectedError as e:
                raise UnexpectedError("Failed to get subscriber id from database.") from e

            if subscriber_id is None:
                return ConfirmOutput(
                    success=False,
                    error=ConfirmError(
                        ConfirmErrorCode.UNAUTHORIZED, "Unknown subscription token"
                    ),
                )

            try:
                status = uow.subscriptions.get_status(subscriber_id)
            except UnexpectedError as e:
                raise UnexpectedError("Failed to check subscriber's status.") from e
            if status is None:
                raise UnexpectedError(f"Token refers to missing subscriber {subscriber_id}.")

            already = ConfirmOutput(
                success=False,
                subscriber_id=subscriber_id,
                error=ConfirmError(
                    ConfirmErrorCode.ALREADY_CONFIRMED, "Subscription already confirmed"
                ),
            )
            if not can_transition(status, SubscriberStatus.CONFIRMED):
                return already

            try:
                if not uow.subscriptions.mark_confirmed(subscriber_id):
                    return already
                uow.commit()
            except UnexpectedError as e:
                raise UnexpectedError("Failed to change subscriber's status.") from e
    except UnexpectedError as e:
        return ConfirmOutput(
            success=False,
            error=ConfirmError(ConfirmErrorCode.UNEXPECTED, e.message, cause=e),
        )

    logger.info("Subscriber %s confirmed", subscriber_id)
    return ConfirmOutput(success=True, subscriber_id=subscriber_id)


def run(
    inp: SubscribeInput | ConfirmInput,
    *,
    uow_factory: UnitOfWorkFactory,
    email_gateway: EmailGatewayPort | None = None,
    config: NewsletterConfig | None = None,
    clock: TimePort | None = None,
) -> SubscribeOutput | ConfirmOutput:
    """
    Main component entry point.

    Args:
        inp: Input command
        uow_factory: Opens one transaction over subscriptions and tokens
        email_gateway: Required for SubscribeInput
        config: Configuration (Optional)
        clock: Time source (Optional)
    """
    if isinstance(inp, SubscribeInput):
        assert email_gateway is not None
        return run_subscribe(
            inp,
            uow_factory=uow_factory,
            email_gateway=email_gateway,
            config=config,
            clock=clock,
        )
    elif isinstance(inp, ConfirmInput):
        return run_confirm(inp, uow_factory=uow_factory)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
