"""Services for the daily message delivery pipeline.

Services:
- eligibility.py: Delivery window and already-sent checks
- messages.py: Tier-based daily message generation
- store.py: Datastore boundary and its SQLModel implementation
- audit.py: Delivery records, run summaries and error-rate alerting
"""

from devotion_notify.services.audit import AuditRecorder
from devotion_notify.services.eligibility import is_eligible, within_delivery_window
from devotion_notify.services.messages import ExperienceTier, GeneratedMessage, MessageGenerator
from devotion_notify.services.store import NotificationStore, SQLNotificationStore

__all__ = [
    "AuditRecorder",
    "ExperienceTier",
    "GeneratedMessage",
    "MessageGenerator",
    "NotificationStore",
    "SQLNotificationStore",
    "is_eligible",
    "within_delivery_window",
]
