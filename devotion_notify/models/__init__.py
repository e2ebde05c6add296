"""SQLModel entities for the daily message pipeline."""

from devotion_notify.models.notification import (
    DAILY_MESSAGE_TYPE,
    DeliveryRecord,
    DeliveryRecordResponse,
    DeliveryStatus,
    NotificationChannel,
)
from devotion_notify.models.preference import RecipientPreference, UserProfile
from devotion_notify.models.run_summary import RunSummary, RunSummaryResponse
from devotion_notify.models.subscription import PushSubscriptionRecord

__all__ = [
    "DAILY_MESSAGE_TYPE",
    "DeliveryRecord",
    "DeliveryRecordResponse",
    "DeliveryStatus",
    "NotificationChannel",
    "PushSubscriptionRecord",
    "RecipientPreference",
    "RunSummary",
    "RunSummaryResponse",
    "UserProfile",
]
