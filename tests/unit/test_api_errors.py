"""
Error code → HTTP response mapping.
"""

import json
import logging

import pytest

from src.api.errors import (
    ERROR_STATUS,
    INTERNAL_ERROR_MESSAGE,
    confirm_error_response,
    publish_error_response,
    subscription_error_response,
)
from src.components.auth import AuthErrorCode
from src.components.newsletter import (
    ConfirmError,
    ConfirmErrorCode,
    SubscribeError,
    SubscribeErrorCode,
)
from src.components.publish import PublishError, PublishErrorCode
from src.core.errors import UnexpectedError


@pytest.mark.parametrize(
    "code",
    [*SubscribeErrorCode, *ConfirmErrorCode, *AuthErrorCode, *PublishErrorCode],
)
def test_every_code_is_mapped(code):
    assert code in ERROR_STATUS


def test_validation_message_returned_verbatim():
    response = subscription_error_response(
        SubscribeError(SubscribeErrorCode.VALIDATION, "Subscriber name is required")
    )
    assert response.status_code == 400
    assert json.loads(response.body) == {"error": "Subscriber name is required"}


def test_unexpected_error_hidden_and_logged(caplog):
    cause = UnexpectedError("Failed to insert new subscriber in the database.")
    with caplog.at_level(logging.ERROR):
        response = subscription_error_response(
            SubscribeError(SubscribeErrorCode.UNEXPECTED, cause.message, cause=cause)
        )

    assert response.status_code == 500
    assert json.loads(response.body) == {"error": INTERNAL_ERROR_MESSAGE}
    assert "Failed to insert new subscriber" in caplog.text


def test_email_delivery_is_server_error():
    response = subscription_error_response(
        SubscribeError(SubscribeErrorCode.EMAIL_DELIVERY, "Failed to send a confirmation email.")
    )
    assert response.status_code == 500


@pytest.mark.parametrize(
    ("code", "status"),
    [(ConfirmErrorCode.UNAUTHORIZED, 401), (ConfirmErrorCode.ALREADY_CONFIRMED, 400)],
)
def test_confirm_outcomes_have_empty_body(code, status):
    response = confirm_error_response(ConfirmError(code, "whatever"))
    assert response.status_code == status
    assert response.body == b""


def test_publish_unauthorized_carries_challenge():
    response = publish_error_response(PublishError(PublishErrorCode.UNAUTHORIZED, "x"))

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == 'Basic realm="publish"'
    assert response.body == b"Authorization failed."


def test_publish_unexpected_is_generic():
    response = publish_error_response(
        PublishError(PublishErrorCode.UNEXPECTED, "Failed to send newsletter issue to a@b.com")
    )
    assert response.status_code == 500
    assert response.body == INTERNAL_ERROR_MESSAGE.encode()
