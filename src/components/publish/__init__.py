"""Publish component - newsletter delivery to confirmed subscribers."""

from src.components.publish.component import run, run_publish
from src.components.publish.models import (
    PublishError,
    PublishErrorCode,
    PublishInput,
    PublishOutput,
    SkippedRecipient,
)
from src.components.publish.ports import ConfirmedSubscribersPort

__all__ = [
    # Entry points
    "run",
    "run_publish",
    # Models
    "PublishInput",
    "PublishOutput",
    "PublishError",
    "PublishErrorCode",
    "SkippedRecipient",
    # Ports
    "ConfirmedSubscribersPort",
]
