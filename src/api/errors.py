"""
Error code → HTTP response mapping.

Every component error passes through here. Codes mapped to a 5xx status log
their full cause chain and answer with a generic message; the rest answer
with the component's own message.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol

from fastapi import Response, status
from fastapi.responses import JSONResponse, PlainTextResponse

from src.components.auth import AuthErrorCode
from src.components.newsletter import ConfirmErrorCode, SubscribeErrorCode
from src.components.publish import PublishErrorCode
from src.core.errors import error_chain

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Unexpected internal server error."
AUTHORIZATION_FAILED_MESSAGE = "Authorization failed."
PUBLISH_CHALLENGE = {"WWW-Authenticate": 'Basic realm="publish"'}


class ComponentError(Protocol):
    @property
    def code(self) -> Enum: ...

    @property
    def message(self) -> str: ...

    @property
    def cause(self) -> BaseException | None: ...


ERROR_STATUS: dict[Enum, int] = {
    SubscribeErrorCode.VALIDATION: status.HTTP_400_BAD_REQUEST,
    SubscribeErrorCode.UNEXPECTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    SubscribeErrorCode.EMAIL_DELIVERY: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ConfirmErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ConfirmErrorCode.ALREADY_CONFIRMED: status.HTTP_400_BAD_REQUEST,
    ConfirmErrorCode.UNEXPECTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    AuthErrorCode.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.UNEXPECTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    PublishErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    PublishErrorCode.UNEXPECTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(code: Enum) -> int:
    return ERROR_STATUS[code]


def log_server_error(error: ComponentError) -> None:
    chain = error_chain(error.cause) if error.cause else error.message
    logger.error("Server error (%s): %s\n%s", error.code.value, error.message, chain)


def public_message(error: ComponentError) -> str:
    """Message safe to send to the client. Logs server errors."""
    if status_for(error.code) >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        log_server_error(error)
        return INTERNAL_ERROR_MESSAGE
    return error.message


def subscription_error_response(error: ComponentError) -> JSONResponse:
    """JSON ``{"error": ...}`` body."""
    return JSONResponse(
        status_code=status_for(error.code),
        content={"error": public_message(error)},
    )


def confirm_error_response(error: ComponentError) -> Response:
    """Bare status for token outcomes, JSON body for server errors."""
    code = status_for(error.code)
    if code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return subscription_error_response(error)
    return Response(status_code=code)


def publish_error_response(error: ComponentError) -> PlainTextResponse:
    code = status_for(error.code)
    if code == status.HTTP_401_UNAUTHORIZED:
        return publish_unauthorized_response()
    return PlainTextResponse(public_message(error), status_code=code)


def publish_unauthorized_response() -> PlainTextResponse:
    return PlainTextResponse(
        AUTHORIZATION_FAILED_MESSAGE,
        status_code=status.HTTP_401_UNAUTHORIZED,
        headers=PUBLISH_CHALLENGE,
    )
