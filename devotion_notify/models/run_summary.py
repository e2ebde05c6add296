"""RunSummary model: one immutable record per automated delivery run."""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlmodel import Column, Field, SQLModel

from devotion_notify.models.notification import JSONType

DAILY_NOTIFICATIONS_JOB = "daily_notifications"


class RunSummary(SQLModel, table=True):
    """Automation log database model for delivery runs."""

    __tablename__ = "automation_logs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    job_type: str = Field(default=DAILY_NOTIFICATIONS_JOB, max_length=50, index=True)
    run_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    users_processed: int = Field(default=0)
    notifications_sent: int = Field(default=0)
    errors: int = Field(default=0)
    # Nominal target zone of the run; informational only
    timezone: str = Field(default="UTC", max_length=64)
    duration_ms: float = Field(default=0.0)
    automated: bool = Field(default=True)
    details: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column("metadata", JSONType, nullable=False),
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and API responses."""
        return {
            "run_time": self.run_time.isoformat(),
            "users_processed": self.users_processed,
            "notifications_sent": self.notifications_sent,
            "errors": self.errors,
            "timezone": self.timezone,
            "duration_ms": self.duration_ms,
            "automated": self.automated,
            "details": self.details,
        }


class RunSummaryResponse(SQLModel):
    """Schema for run summary response."""

    run_time: datetime
    users_processed: int
    notifications_sent: int
    errors: int
    timezone: str
    duration_ms: float
    automated: bool
    details: dict[str, Any]

    model_config = {"from_attributes": True}
