"""
HTTP Email Gateway.

Sends transactional email through a Postmark-style REST API:

    POST {base_url}/email
    X-Postmark-Server-Token: <authorization_token>
    {"From": ..., "To": ..., "Subject": ..., "HtmlBody": ..., "TextBody": ...}

Non-2xx responses and transport errors (including timeouts) are reported as
FAILED results. Nothing is retried here.
"""

from __future__ import annotations

import logging

import httpx

from src.core.ports.email import EmailAddress, EmailResult

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Postmark-Server-Token"


class HttpEmailGateway:
    """Implements EmailGatewayPort on top of an httpx client."""

    def __init__(
        self,
        base_url: str,
        sender: EmailAddress,
        authorization_token: str,
        timeout_seconds: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.sender = sender
        self._client = httpx.Client(
            timeout=timeout_seconds,
            headers={TOKEN_HEADER: authorization_token},
            transport=transport,
        )

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str,
    ) -> EmailResult:
        payload = {
            "From": str(self.sender),
            "To": recipient,
            "Subject": subject,
            "HtmlBody": body_html,
            "TextBody": body_text,
        }
        try:
            response = self._client.post(f"{self.base_url}/email", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Email API rejected message to %s with status %s",
                recipient,
                e.response.status_code,
            )
            return EmailResult.failed(recipient, f"HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.warning("Email API unreachable while sending to %s: %r", recipient, e)
            return EmailResult.failed(recipient, str(e) or type(e).__name__)

        return EmailResult.success(recipient, _message_id(response))

    def close(self) -> None:
        self._client.close()


def _message_id(response: httpx.Response) -> str | None:
    """Provider message id from an accepted reply, if the body carries one."""
    if not response.headers.get("content-type", "").startswith("application/json"):
        return None
    try:
        body = response.json()
    except ValueError:
        logger.warning("Email API accepted the message but returned a non-JSON body")
        return None
    if not isinstance(body, dict):
        return None
    message_id = body.get("MessageID")
    return str(message_id) if message_id is not None else None
