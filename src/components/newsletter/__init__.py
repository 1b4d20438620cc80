"""
Newsletter component.

Double opt-in subscriber registration and confirmation.
"""

from src.components.newsletter.component import (
    EMAIL_REGEX,
    TOKEN_ALPHABET,
    TOKEN_LENGTH,
    build_confirmation_email,
    build_confirmation_url,
    generate_subscription_token,
    run,
    run_confirm,
    run_subscribe,
    sanitize_token,
    validate_email,
    validate_name,
)
from src.components.newsletter.models import (
    VALID_TRANSITIONS,
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
from src.components.newsletter.ports import (
    NewsletterUnitOfWorkPort,
    SubscriptionRepoPort,
    SubscriptionTokenRepoPort,
    TimePort,
    UnitOfWorkFactory,
)

__all__ = [
    # Component
    "run",
    "run_subscribe",
    "run_confirm",
    # Pure functions
    "validate_email",
    "validate_name",
    "generate_subscription_token",
    "sanitize_token",
    "build_confirmation_url",
    "build_confirmation_email",
    # Constants
    "EMAIL_REGEX",
    "TOKEN_ALPHABET",
    "TOKEN_LENGTH",
    # Models
    "Subscriber",
    "SubscriberStatus",
    "VALID_TRANSITIONS",
    "can_transition",
    "NewsletterConfig",
    # Input/Output
    "SubscribeInput",
    "SubscribeOutput",
    "ConfirmInput",
    "ConfirmOutput",
    "FieldError",
    "ValidateEmailOutput",
    "ValidateNameOutput",
    # Errors
    "SubscribeError",
    "SubscribeErrorCode",
    "ConfirmError",
    "ConfirmErrorCode",
    # Ports
    "SubscriptionRepoPort",
    "SubscriptionTokenRepoPort",
    "NewsletterUnitOfWorkPort",
    "UnitOfWorkFactory",
    "TimePort",
]
