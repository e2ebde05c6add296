"""Web Push channel.

Delivery mechanism:
    - Web Push Protocol (RFC 8030) with VAPID authentication via pywebpush
    - Payload: JSON with title, body, icon, badge and verse data
    - pywebpush handles payload encryption; this module only maps outcomes
"""

import json
import logging
from typing import Any

import requests
from pywebpush import WebPushException, webpush

from devotion_notify.channels.base import ChannelOutcome, PushSender, classify_push_status
from devotion_notify.config import Settings
from devotion_notify.errors import ConfigurationError
from devotion_notify.models.subscription import PushSubscriptionRecord
from devotion_notify.services.messages import GeneratedMessage

logger = logging.getLogger(__name__)

PUSH_TTL_SECONDS = 86400
PUSH_ICON = "/icon-192x192.png"
PUSH_BADGE = "/icon-72x72.png"


def build_push_payload(message: GeneratedMessage) -> dict[str, Any]:
    """Build the notification payload shown by the service worker."""
    return {
        "title": message.title,
        "body": message.body,
        "icon": PUSH_ICON,
        "badge": PUSH_BADGE,
        "tag": "daily-spiritual-message",
        "data": {
            "verse": message.scripture_text,
            "reference": message.scripture_reference,
            "url": "/",
        },
    }


class WebPushSender(PushSender):
    """Push sender backed by pywebpush."""

    def __init__(
        self,
        vapid_private_key: str,
        vapid_subject: str,
        timeout_seconds: float = 10.0,
        ttl_seconds: int = PUSH_TTL_SECONDS,
    ) -> None:
        if not vapid_private_key:
            raise ConfigurationError("VAPID private key is required for push delivery")
        self.vapid_private_key = vapid_private_key
        self.vapid_subject = vapid_subject
        self.timeout_seconds = timeout_seconds
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "WebPushSender":
        if not settings.VAPID_PUBLIC_KEY:
            raise ConfigurationError("VAPID_PUBLIC_KEY environment variable is required")
        return cls(
            vapid_private_key=settings.VAPID_PRIVATE_KEY,
            vapid_subject=settings.VAPID_SUBJECT,
            timeout_seconds=settings.CHANNEL_TIMEOUT_SECONDS,
        )

    def send(
        self, subscription: PushSubscriptionRecord, message: GeneratedMessage
    ) -> ChannelOutcome:
        """Send one push notification to a subscription."""
        try:
            response = webpush(
                subscription_info=subscription.to_subscription_info(),
                data=json.dumps(build_push_payload(message)),
                vapid_private_key=self.vapid_private_key,
                vapid_claims={"sub": self.vapid_subject},
                ttl=self.ttl_seconds,
                timeout=self.timeout_seconds,
            )
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            outcome = classify_push_status(status_code, str(e)[:500])
            logger.warning(
                f"[WEB_PUSH] Push service rejected subscription {subscription.id}",
                extra={
                    "subscription_id": str(subscription.id),
                    "status_code": status_code,
                    "outcome": outcome.status.value,
                },
            )
            return outcome
        except requests.RequestException as e:
            logger.warning(
                f"[WEB_PUSH] Request failed for subscription {subscription.id}: {e}",
                extra={"subscription_id": str(subscription.id)},
            )
            return ChannelOutcome.transient(f"request failed: {e}"[:500])

        status_code = getattr(response, "status_code", 201)
        outcome = classify_push_status(status_code, f"push service returned {status_code}")
        if outcome.is_delivered:
            logger.debug(
                f"[WEB_PUSH] Delivered to subscription {subscription.id}",
                extra={"subscription_id": str(subscription.id)},
            )
        return outcome
