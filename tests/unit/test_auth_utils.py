"""
Basic authentication header parsing.
"""

import base64

import pytest

from src.api.auth_utils import basic_authentication
from src.core.errors import ValidationError


def encoded(raw: bytes) -> str:
    return "Basic " + base64.b64encode(raw).decode()


def test_valid_header():
    creds = basic_authentication({"Authorization": encoded(b"admin:s3cr:et")})

    assert creds.username == "admin"
    assert creds.password == "s3cr:et"


def test_password_not_in_repr():
    creds = basic_authentication({"Authorization": encoded(b"admin:hunter2")})
    assert "hunter2" not in repr(creds)


def test_empty_password_allowed_by_parser():
    creds = basic_authentication({"Authorization": encoded(b"admin:")})
    assert creds.password == ""


@pytest.mark.parametrize(
    ("headers", "message"),
    [
        ({}, "The 'Authorization' header was missing."),
        ({"Authorization": "Bearer abc"}, "The 'Authorization' scheme was not 'Basic'."),
        ({"Authorization": "Basic !!!not-base64"}, "Failed to base64-decode 'Basic' credentials."),
        (
            {"Authorization": encoded(b"\xff\xfe:\xff")},
            "The decoded credentials string is not valid UTF-8.",
        ),
        ({"Authorization": encoded(b"admin")}, "A password must be provided in 'Basic' auth."),
    ],
)
def test_malformed_headers_rejected(headers, message):
    with pytest.raises(ValidationError) as exc_info:
        basic_authentication(headers)
    assert exc_info.value.message == message
