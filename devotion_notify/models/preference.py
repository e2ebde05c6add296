"""Recipient preference and profile models.

Both tables are owned by the preference-editing application; the delivery
pipeline only reads them.
"""

from datetime import datetime, timezone
from uuid import UUID

from sqlmodel import Field, SQLModel


class RecipientPreference(SQLModel, table=True):
    """Daily message preferences for one user."""

    __tablename__ = "user_notification_preferences"

    user_id: UUID = Field(primary_key=True)
    timezone: str = Field(default="UTC", max_length=64)
    # "HH:MM" local time; left as text because the editor does not validate it
    preferred_time: str | None = Field(default="08:00", max_length=16)
    push_enabled: bool = Field(default=True)
    email_enabled: bool = Field(default=False)
    is_active: bool = Field(default=True, index=True)
    experience_tier: str | None = Field(default="beginner", max_length=32)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_enabled_channel(self) -> bool:
        return self.push_enabled or self.email_enabled


class UserProfile(SQLModel, table=True):
    """User profile fields the pipeline needs for addressing email."""

    __tablename__ = "user_profiles"

    id: UUID = Field(primary_key=True)
    email: str | None = Field(default=None, max_length=255)
    full_name: str | None = Field(default=None, max_length=255)
