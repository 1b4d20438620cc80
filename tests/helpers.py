"""Shared helpers for API tests."""

import base64
import re
from dataclasses import dataclass
from pathlib import Path
from uuid import UUID

from fastapi.testclient import TestClient
from httpx import Response

from src.adapters.dev_email import DevEmailAdapter

MIGRATIONS_DIR = str(Path(__file__).parent.parent / "migrations")

CONFIRMATION_LINK = re.compile(r"https?://[^\s\"<>]+subscription_token=[A-Za-z0-9]+")


@dataclass
class TestUser:
    __test__ = False

    user_id: UUID
    username: str
    password: str

    def basic_auth_header(self) -> dict[str, str]:
        return basic_auth_header(self.username, self.password)


def basic_auth_header(username: str, password: str) -> dict[str, str]:
    encoded = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {encoded}"}


def post_subscription(client: TestClient, email: str, name: str) -> Response:
    return client.post("/subscriptions", data={"email": email, "name": name})


def confirmation_links(email_gateway: DevEmailAdapter) -> list[str]:
    """Confirmation links found in every email sent so far, oldest first."""
    links = []
    for email in email_gateway.sent_emails:
        match = CONFIRMATION_LINK.search(email.body_text)
        if match:
            links.append(match.group(0))
    return links


def newsletter_body(title: str = "Newsletter title") -> dict[str, object]:
    return {
        "title": title,
        "content": {
            "text": "Newsletter body as plain text",
            "html": "<p>Newsletter body as HTML</p>",
        },
    }
