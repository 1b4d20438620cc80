"""
Publish component unit tests.

Tests for newsletter delivery: authentication gate, skip policy for malformed
stored addresses, and abort on the first transport failure.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any
from uuid import UUID, uuid4

import pytest

from src.adapters.dev_email import DevEmailAdapter
from src.components.auth import Credentials, StoredCredentials
from src.components.publish import PublishErrorCode, PublishInput, run, run_publish
from src.core.errors import EmailDeliveryError, UnexpectedError

# --- Mock Implementations ---


class MockSubscribers:
    def __init__(self, emails: list[str], fail: bool = False) -> None:
        self.emails = emails
        self.fail = fail
        self.reads = 0

    def list_confirmed_emails(self) -> list[str]:
        self.reads += 1
        if self.fail:
            raise UnexpectedError("Failed to get confirmed subscribers from the database")
        return list(self.emails)


class MockUserRepo:
    def __init__(self) -> None:
        self.user_id: UUID = uuid4()
        self.fail = False

    def get_stored_credentials(self, username: str) -> StoredCredentials | None:
        if self.fail:
            raise UnexpectedError("Failed to retrieve stored credentials")
        if username != "admin":
            return None
        return StoredCredentials(self.user_id, "admin", "hashed_secret")


class MockHasher:
    fallback_hash = "hashed_fallback"

    def verify_password(self, password: str, hash_str: str) -> bool:
        return hash_str == f"hashed_{password}"


class InlinePool:
    async def run(self, fn: Callable[..., Any], *args: Any) -> Any:
        return fn(*args)


# --- Fixtures ---


@pytest.fixture
def user_repo() -> MockUserRepo:
    return MockUserRepo()


@pytest.fixture
def gateway() -> DevEmailAdapter:
    return DevEmailAdapter(log_body=False)


def issue(username: str = "admin", password: str = "secret") -> PublishInput:
    return PublishInput(
        title="Newsletter title",
        html="<p>Newsletter body as HTML</p>",
        text="Newsletter body as plain text",
        credentials=Credentials(username=username, password=password),
    )


async def publish(
    inp: PublishInput,
    subscribers: MockSubscribers,
    gateway: DevEmailAdapter,
    user_repo: MockUserRepo,
) -> Any:
    return await run_publish(
        inp,
        subscribers=subscribers,
        email_gateway=gateway,
        user_repo=user_repo,
        hasher=MockHasher(),
        hashing_pool=InlinePool(),
    )


# --- Tests ---


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_wrong_password_unauthorized_and_no_reads(
        self, gateway: DevEmailAdapter, user_repo: MockUserRepo
    ) -> None:
        subscribers = MockSubscribers(["a@example.com"])

        result = await publish(issue(password="nope"), subscribers, gateway, user_repo)

        assert result.success is False
        assert result.error.code == PublishErrorCode.UNAUTHORIZED
        assert subscribers.reads == 0
        assert gateway.email_count == 0

    @pytest.mark.asyncio
    async def test_unknown_user_unauthorized(
        self, gateway: DevEmailAdapter, user_repo: MockUserRepo
    ) -> None:
        result = await publish(
            issue(username="stranger"), MockSubscribers([]), gateway, user_repo
        )
        assert result.error.code == PublishErrorCode.UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_credential_store_failure_unexpected(
        self, gateway: DevEmailAdapter, user_repo: MockUserRepo
    ) -> None:
        user_repo.fail = True
        subscribers = MockSubscribers(["a@example.com"])

        result = await publish(issue(), subscribers, gateway, user_repo)

        assert result.error.code == PublishErrorCode.UNEXPECTED
        assert subscribers.reads == 0


class TestDelivery:
    @pytest.mark.asyncio
    async def test_delivers_to_every_confirmed_subscriber(
        self, gateway: DevEmailAdapter, user_repo: MockUserRepo
    ) -> None:
        subscribers = MockSubscribers(["a@example.com", "b@example.com"])

        result = await publish(issue(), subscribers, gateway, user_repo)

        assert result.success is True
        assert result.user_id == user_repo.user_id
        assert result.sent == 2
        assert [e.recipient for e in gateway.sent_emails] == ["a@example.com", "b@example.com"]
        email = gateway.get_last_email()
        assert email.subject == "Newsletter title"
        assert email.body_html == "<p>Newsletter body as HTML</p>"
        assert email.body_text == "Newsletter body as plain text"

    @pytest.mark.asyncio
    async def test_no_confirmed_subscribers(
        self, gateway: DevEmailAdapter, user_repo: MockUserRepo
    ) -> None:
        result = await publish(issue(), MockSubscribers([]), gateway, user_repo)

        assert result.success is True
        assert result.sent == 0
        assert gateway.email_count == 0

    @pytest.mark.asyncio
    async def test_malformed_address_skipped_with_warning(
        self,
        gateway: DevEmailAdapter,
        user_repo: MockUserRepo,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        subscribers = MockSubscribers(["a@example.com", "not-an-email", "c@example.com"])

        with caplog.at_level(logging.WARNING):
            result = await publish(issue(), subscribers, gateway, user_repo)

        assert result.success is True
        assert result.sent == 2
        assert [s.email for s in result.skipped] == ["not-an-email"]
        assert [e.recipient for e in gateway.sent_emails] == ["a@example.com", "c@example.com"]
        assert "Skipping a confirmed subscriber" in caplog.text

    @pytest.mark.asyncio
    async def test_transport_failure_aborts_remaining(
        self, user_repo: MockUserRepo
    ) -> None:
        gateway = DevEmailAdapter(fail_recipients={"b@example.com"}, log_body=False)
        subscribers = MockSubscribers(["a@example.com", "b@example.com", "c@example.com"])

        result = await publish(issue(), subscribers, gateway, user_repo)

        assert result.success is False
        assert result.error.code == PublishErrorCode.UNEXPECTED
        assert result.error.message == "Failed to send newsletter issue to b@example.com"
        assert isinstance(result.error.cause.__cause__, EmailDeliveryError)
        assert result.sent == 1
        assert [e.recipient for e in gateway.sent_emails] == ["a@example.com"]

    @pytest.mark.asyncio
    async def test_subscriber_read_failure_unexpected(
        self, gateway: DevEmailAdapter, user_repo: MockUserRepo
    ) -> None:
        result = await publish(issue(), MockSubscribers([], fail=True), gateway, user_repo)

        assert result.success is False
        assert result.error.code == PublishErrorCode.UNEXPECTED
        assert isinstance(result.error.cause, UnexpectedError)

    @pytest.mark.asyncio
    async def test_run_dispatches(
        self, gateway: DevEmailAdapter, user_repo: MockUserRepo
    ) -> None:
        result = await run(
            issue(),
            subscribers=MockSubscribers(["a@example.com"]),
            email_gateway=gateway,
            user_repo=user_repo,
            hasher=MockHasher(),
            hashing_pool=InlinePool(),
        )
        assert result.sent == 1
