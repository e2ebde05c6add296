"""Per-channel delivery backends.

Each sender exposes send(target, message) -> ChannelOutcome.
Retry logic lives in the delivery worker.
"""

from devotion_notify.channels.base import (
    ChannelOutcome,
    EmailSender,
    OutcomeStatus,
    PushSender,
)
from devotion_notify.channels.email import BrevoEmailSender
from devotion_notify.channels.web_push import WebPushSender

__all__ = [
    "BrevoEmailSender",
    "ChannelOutcome",
    "EmailSender",
    "OutcomeStatus",
    "PushSender",
    "WebPushSender",
]
