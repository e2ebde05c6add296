"""Channel sender abstractions.

Every sender maps its transport's errors and status codes into a closed
ChannelOutcome so the delivery worker never branches on raw responses.
Retry logic lives in the worker, not in the senders.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from devotion_notify.models.subscription import PushSubscriptionRecord
from devotion_notify.services.messages import GeneratedMessage

# Push services answer 404/410 when a subscription has expired or been revoked
GONE_STATUS_CODES = frozenset({404, 410})


class OutcomeStatus(str, Enum):
    """Tri-state delivery outcome."""

    DELIVERED = "delivered"
    TRANSIENT_FAILURE = "transient_failure"
    PERMANENT_FAILURE = "permanent_failure"


@dataclass(frozen=True)
class ChannelOutcome:
    """Result of a single send attempt on one channel.

    Attributes:
        status: Delivered, transient failure, or permanent failure
        detail: Human-readable error detail (None when delivered)
        status_code: Transport status code, if any
    """

    status: OutcomeStatus
    detail: str | None = None
    status_code: int | None = None

    @classmethod
    def delivered(cls, status_code: int | None = None) -> "ChannelOutcome":
        return cls(OutcomeStatus.DELIVERED, status_code=status_code)

    @classmethod
    def transient(cls, detail: str, status_code: int | None = None) -> "ChannelOutcome":
        return cls(OutcomeStatus.TRANSIENT_FAILURE, detail=detail, status_code=status_code)

    @classmethod
    def permanent(cls, detail: str, status_code: int | None = None) -> "ChannelOutcome":
        return cls(OutcomeStatus.PERMANENT_FAILURE, detail=detail, status_code=status_code)

    @property
    def is_delivered(self) -> bool:
        return self.status == OutcomeStatus.DELIVERED

    @property
    def is_transient(self) -> bool:
        return self.status == OutcomeStatus.TRANSIENT_FAILURE

    @property
    def is_permanent(self) -> bool:
        return self.status == OutcomeStatus.PERMANENT_FAILURE

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for delivery record metadata."""
        return {
            "status": self.status.value,
            "detail": self.detail,
            "status_code": self.status_code,
        }


class PushSender(ABC):
    """Delivers a message to one push subscription."""

    @abstractmethod
    def send(
        self, subscription: PushSubscriptionRecord, message: GeneratedMessage
    ) -> ChannelOutcome:
        """Send one push notification.

        Implementations must not raise for transport errors; they return a
        transient or permanent failure instead.
        """
        pass


class EmailSender(ABC):
    """Delivers a message to one email address."""

    @abstractmethod
    def send(self, email_address: str, message: GeneratedMessage) -> ChannelOutcome:
        """Send one email.

        Implementations must not raise for transport errors; they return a
        transient or permanent failure instead.
        """
        pass


def classify_push_status(status_code: int | None, detail: str) -> ChannelOutcome:
    """Map a push service response to an outcome.

    Only 404/410 prove the subscription is gone. Everything else (5xx, 429,
    auth or payload errors, no response) is reported as transient so the
    subscription is kept.
    """
    if status_code is not None and 200 <= status_code < 300:
        return ChannelOutcome.delivered(status_code)
    if status_code in GONE_STATUS_CODES:
        return ChannelOutcome.permanent(detail, status_code)
    return ChannelOutcome.transient(detail, status_code)


def classify_email_status(status_code: int, detail: str) -> ChannelOutcome:
    """Map an email API response to an outcome.

    4xx (other than 429) means the request itself was rejected and would be
    rejected again; 429 and 5xx are transient.
    """
    if 200 <= status_code < 300:
        return ChannelOutcome.delivered(status_code)
    if status_code == 429 or status_code >= 500:
        return ChannelOutcome.transient(detail, status_code)
    return ChannelOutcome.permanent(detail, status_code)
