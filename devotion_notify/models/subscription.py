"""Web Push subscription model."""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class PushSubscriptionRecord(SQLModel, table=True):
    """A browser/device push subscription registered by a user.

    Subscriptions are deactivated, never deleted, when the push service
    reports them gone so the history is kept.
    """

    __tablename__ = "push_subscriptions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(index=True)
    endpoint: str = Field(max_length=1024)
    auth_key: str = Field(max_length=255)
    p256dh_key: str = Field(max_length=255)
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    deactivated_at: datetime | None = Field(default=None)

    def to_subscription_info(self) -> dict:
        """Subscription in the shape the Web Push protocol libraries expect."""
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh_key, "auth": self.auth_key},
        }
