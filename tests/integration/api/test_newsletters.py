"""
POST /newsletters: Basic-auth gate and delivery to confirmed subscribers.
"""

import base64
import logging
from datetime import UTC, datetime
from uuid import uuid4

import pytest

from src.components.newsletter import Subscriber, SubscriberStatus
from tests.helpers import (
    basic_auth_header,
    confirmation_links,
    newsletter_body,
    post_subscription,
)

CHALLENGE = 'Basic realm="publish"'


def create_unconfirmed_subscriber(client, email_gateway, email="pending@example.com"):
    post_subscription(client, email, "pending")
    return confirmation_links(email_gateway)[-1]


def create_confirmed_subscriber(client, email_gateway, email="confirmed@example.com"):
    link = create_unconfirmed_subscriber(client, email_gateway, email)
    assert client.get(link).status_code == 200


def assert_unauthorized(response):
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == CHALLENGE


@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "Bearer some-token"},
        {"Authorization": "Basic %%%"},
        {"Authorization": "Basic " + base64.b64encode(b"no-colon").decode()},
    ],
    ids=["missing", "wrong-scheme", "bad-base64", "no-password"],
)
def test_requests_without_valid_basic_auth_are_rejected(client, headers):
    response = client.post("/newsletters", json=newsletter_body(), headers=headers)

    assert_unauthorized(response)


def test_unknown_user_is_rejected(client):
    response = client.post(
        "/newsletters",
        json=newsletter_body(),
        headers=basic_auth_header(uuid4().hex, uuid4().hex),
    )

    assert_unauthorized(response)


def test_wrong_password_is_rejected(client, test_user):
    response = client.post(
        "/newsletters",
        json=newsletter_body(),
        headers=basic_auth_header(test_user.username, uuid4().hex),
    )

    assert_unauthorized(response)


@pytest.mark.parametrize(
    "body",
    [
        {"content": {"text": "t", "html": "<p>h</p>"}},
        {"title": "Newsletter!"},
        {"title": "Newsletter!", "content": {"text": "only text"}},
    ],
)
def test_invalid_body_is_rejected_with_422(client, test_user, body):
    response = client.post("/newsletters", json=body, headers=test_user.basic_auth_header())

    assert response.status_code == 422


def test_newsletters_are_not_delivered_to_unconfirmed_subscribers(
    client, email_gateway, test_user
):
    create_unconfirmed_subscriber(client, email_gateway)
    email_gateway.clear()

    response = client.post(
        "/newsletters", json=newsletter_body(), headers=test_user.basic_auth_header()
    )

    assert response.status_code == 200
    assert email_gateway.email_count == 0


def test_newsletters_are_delivered_to_confirmed_subscribers(client, email_gateway, test_user):
    create_confirmed_subscriber(client, email_gateway)
    create_unconfirmed_subscriber(client, email_gateway)
    email_gateway.clear()

    response = client.post(
        "/newsletters",
        json=newsletter_body("Issue #1"),
        headers=test_user.basic_auth_header(),
    )

    assert response.status_code == 200
    assert email_gateway.email_count == 1
    sent = email_gateway.get_last_email()
    assert sent.recipient == "confirmed@example.com"
    assert sent.subject == "Issue #1"
    assert sent.body_html == "<p>Newsletter body as HTML</p>"
    assert sent.body_text == "Newsletter body as plain text"


def test_malformed_stored_email_is_skipped(client, app_context, email_gateway, test_user, caplog):
    create_confirmed_subscriber(client, email_gateway)
    broken = Subscriber(
        id=uuid4(),
        email="not-an-email",
        name="broken",
        status=SubscriberStatus.PENDING,
        subscribed_at=datetime.now(UTC),
    )
    app_context.subscriptions.insert(broken)
    app_context.subscriptions.mark_confirmed(broken.id)
    email_gateway.clear()

    with caplog.at_level(logging.WARNING):
        response = client.post(
            "/newsletters", json=newsletter_body(), headers=test_user.basic_auth_header()
        )

    assert response.status_code == 200
    assert [e.recipient for e in email_gateway.sent_emails] == ["confirmed@example.com"]
    assert "Skipping a confirmed subscriber" in caplog.text


def test_delivery_failure_aborts_with_500(client, email_gateway, test_user):
    create_confirmed_subscriber(client, email_gateway, "first@example.com")
    create_confirmed_subscriber(client, email_gateway, "second@example.com")
    create_confirmed_subscriber(client, email_gateway, "third@example.com")
    email_gateway.clear()
    email_gateway.fail_recipients = {"second@example.com"}

    response = client.post(
        "/newsletters", json=newsletter_body(), headers=test_user.basic_auth_header()
    )

    assert response.status_code == 500
    assert response.text == "Unexpected internal server error."
    assert [e.recipient for e in email_gateway.sent_emails] == ["first@example.com"]
