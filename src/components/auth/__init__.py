"""
Auth component - operator credential validation.

Timing-safe username/password checks for the login and publish endpoints.
"""

from .component import AUTHENTICATION_FAILED, run, run_validate_credentials
from .models import (
    AuthError,
    AuthErrorCode,
    AuthOutput,
    Credentials,
    StoredCredentials,
    ValidateCredentialsInput,
)
from .ports import HashingPoolPort, PasswordHasherPort, UserRepoPort

__all__ = [
    # Entry points
    "run",
    "run_validate_credentials",
    "AUTHENTICATION_FAILED",
    # Models
    "AuthError",
    "AuthErrorCode",
    "AuthOutput",
    "Credentials",
    "StoredCredentials",
    "ValidateCredentialsInput",
    # Ports
    "UserRepoPort",
    "PasswordHasherPort",
    "HashingPoolPort",
]
