"""DeliveryRecord model: append-only audit log of daily message deliveries."""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, Index, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

DAILY_MESSAGE_TYPE = "daily_spiritual_message"

JSONType = JSON().with_variant(JSONB(), "postgresql")


class DeliveryStatus(str, Enum):
    """Outcome stored on a delivery record."""

    SENT = "sent"
    FAILED = "failed"


class NotificationChannel(str, Enum):
    """Delivery channels."""

    EMAIL = "email"
    WEB_PUSH = "web_push"


class DeliveryRecord(SQLModel, table=True):
    """One row per recipient per processed attempt.

    A partial unique index allows at most one sent (non-test) record per
    user per UTC day.
    """

    __tablename__ = "user_notifications"
    __table_args__ = (
        Index(
            "uq_user_notifications_daily_sent",
            "user_id",
            "notification_type",
            "delivery_date",
            unique=True,
            sqlite_where=text("status = 'sent' AND is_test = 0"),
            postgresql_where=text("status = 'sent' AND is_test = false"),
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(index=True)
    notification_type: str = Field(default=DAILY_MESSAGE_TYPE, max_length=64, index=True)
    title: str = Field(max_length=255)
    message: str
    status: str = Field(max_length=16, index=True)
    delivery_date: date = Field(index=True)
    is_test: bool = Field(default=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    # Column is named "metadata" in the database; the attribute name is reserved by SQLAlchemy
    details: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column("metadata", JSONType, nullable=False),
    )

    @property
    def is_sent(self) -> bool:
        return self.status == DeliveryStatus.SENT.value


class DeliveryRecordResponse(SQLModel):
    """Schema for delivery record response."""

    id: UUID
    user_id: UUID
    notification_type: str
    title: str
    message: str
    status: str
    delivery_date: date
    is_test: bool
    created_at: datetime
    details: dict[str, Any]

    model_config = {"from_attributes": True}
