import base64
import binascii
from collections.abc import Mapping

from src.components.auth import Credentials
from src.core.errors import ValidationError


def basic_authentication(headers: Mapping[str, str]) -> Credentials:
    """
    Extract credentials from an ``Authorization: Basic <base64>`` header.

    Raises ValidationError describing the first problem found.
    """
    header_value = headers.get("Authorization")
    if header_value is None:
        raise ValidationError("The 'Authorization' header was missing.", "Authorization")

    if not header_value.startswith("Basic "):
        raise ValidationError("The 'Authorization' scheme was not 'Basic'.", "Authorization")
    encoded_segment = header_value[len("Basic ") :]

    try:
        decoded_bytes = base64.b64decode(encoded_segment, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(
            "Failed to base64-decode 'Basic' credentials.", "Authorization"
        ) from e

    try:
        decoded = decoded_bytes.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ValidationError(
            "The decoded credentials string is not valid UTF-8.", "Authorization"
        ) from e

    username, sep, password = decoded.partition(":")
    if not sep:
        raise ValidationError("A password must be provided in 'Basic' auth.", "Authorization")

    return Credentials(username=username, password=password)
