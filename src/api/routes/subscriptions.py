"""
Subscription endpoints (double opt-in).

Endpoints:
- POST /subscriptions - Register a subscriber and mail the confirmation link
- GET /subscriptions/confirm - Redeem a confirmation token
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Form, Response, status

from src.adapters.clock import SystemClock
from src.api.deps import (
    get_clock,
    get_email_gateway,
    get_newsletter_config,
    get_uow_factory,
)
from src.api.errors import confirm_error_response, subscription_error_response
from src.components.newsletter import (
    ConfirmInput,
    NewsletterConfig,
    SubscribeInput,
    UnitOfWorkFactory,
    run_confirm,
    run_subscribe,
)
from src.core.ports.email import EmailGatewayPort

router = APIRouter()


@router.post(
    "/subscriptions",
    summary="Subscribe to the newsletter",
    responses={
        400: {"description": "Invalid email or name"},
        500: {"description": "Storage or email delivery failure"},
    },
)
def subscribe(
    email: str = Form(""),
    name: str = Form(""),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    email_gateway: EmailGatewayPort = Depends(get_email_gateway),
    config: NewsletterConfig = Depends(get_newsletter_config),
    clock: SystemClock = Depends(get_clock),
) -> Response:
    """
    Start the double opt-in flow.

    Missing fields are treated like empty ones, so they fail validation with 400.
    """
    result = run_subscribe(
        SubscribeInput(email=email, name=name),
        uow_factory=uow_factory,
        email_gateway=email_gateway,
        config=config,
        clock=clock,
    )
    if result.error is not None:
        return subscription_error_response(result.error)
    return Response(status_code=status.HTTP_200_OK)


@router.get(
    "/subscriptions/confirm",
    summary="Confirm a pending subscription",
    responses={
        400: {"description": "Subscription already confirmed"},
        401: {"description": "Unknown token"},
    },
)
def confirm(
    subscription_token: str | None = None,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> Response:
    if subscription_token is None:
        return Response(status_code=status.HTTP_400_BAD_REQUEST)
    result = run_confirm(ConfirmInput(token=subscription_token), uow_factory=uow_factory)
    if result.error is not None:
        return confirm_error_response(result.error)
    return Response(status_code=status.HTTP_200_OK)
