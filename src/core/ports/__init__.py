# Postbox - Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.email import (
    EmailAddress,
    EmailGatewayPort,
    EmailResult,
    EmailStatus,
)

__all__ = [
    "EmailAddress",
    "EmailGatewayPort",
    "EmailResult",
    "EmailStatus",
]
