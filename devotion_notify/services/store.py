"""Datastore boundary for the delivery pipeline.

NotificationStore lists every read and write the delivery worker makes.
SQLNotificationStore implements it on SQLModel; each call opens its own
short-lived session so pool threads never share one.
"""

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from uuid import UUID

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from devotion_notify.db.session import get_engine
from devotion_notify.errors import DataStoreError, DuplicateDeliveryError
from devotion_notify.models.notification import (
    DAILY_MESSAGE_TYPE,
    DeliveryRecord,
    DeliveryStatus,
)
from devotion_notify.models.preference import RecipientPreference, UserProfile
from devotion_notify.models.run_summary import RunSummary
from devotion_notify.models.subscription import PushSubscriptionRecord

logger = logging.getLogger(__name__)


class NotificationStore(ABC):
    """Reads and writes consumed by the delivery worker."""

    @abstractmethod
    def load_eligible_recipients(self) -> list[RecipientPreference]:
        """Active recipients with at least one channel enabled."""
        pass

    @abstractmethod
    def get_preference(self, user_id: UUID) -> RecipientPreference | None:
        pass

    @abstractmethod
    def get_profile(self, user_id: UUID) -> UserProfile | None:
        pass

    @abstractmethod
    def load_active_subscriptions(self, user_id: UUID) -> list[PushSubscriptionRecord]:
        pass

    @abstractmethod
    def has_sent_today(self, user_id: UUID, day: date) -> bool:
        """Whether a sent, non-test daily message exists for (user, day)."""
        pass

    @abstractmethod
    def deactivate_subscription(self, subscription_id: UUID) -> None:
        pass

    @abstractmethod
    def persist_delivery_record(self, record: DeliveryRecord) -> None:
        """Append a delivery record.

        Raises:
            DuplicateDeliveryError: A sent record already exists for (user, day)
        """
        pass

    @abstractmethod
    def persist_run_summary(self, summary: RunSummary) -> None:
        pass


class SQLNotificationStore(NotificationStore):
    """NotificationStore backed by SQLModel sessions."""

    def __init__(self, engine: Engine | None = None) -> None:
        """Initialize the store.

        Args:
            engine: SQLAlchemy engine (defaults to the configured database)
        """
        self._engine = engine or get_engine()

    def _session_factory(self) -> Session:
        return Session(self._engine)

    def load_eligible_recipients(self) -> list[RecipientPreference]:
        try:
            with self._session_factory() as session:
                recipients = session.exec(
                    select(RecipientPreference)
                    .where(RecipientPreference.is_active == True)  # noqa: E712
                    .where(
                        (RecipientPreference.push_enabled == True)  # noqa: E712
                        | (RecipientPreference.email_enabled == True)  # noqa: E712
                    )
                ).all()
                return list(recipients)
        except SQLAlchemyError as e:
            raise DataStoreError(f"Could not load recipients: {e}") from e

    def get_preference(self, user_id: UUID) -> RecipientPreference | None:
        with self._session_factory() as session:
            return session.get(RecipientPreference, user_id)

    def get_profile(self, user_id: UUID) -> UserProfile | None:
        with self._session_factory() as session:
            return session.get(UserProfile, user_id)

    def load_active_subscriptions(self, user_id: UUID) -> list[PushSubscriptionRecord]:
        with self._session_factory() as session:
            subscriptions = session.exec(
                select(PushSubscriptionRecord)
                .where(PushSubscriptionRecord.user_id == user_id)
                .where(PushSubscriptionRecord.is_active == True)  # noqa: E712
                .order_by(PushSubscriptionRecord.created_at)
            ).all()
            return list(subscriptions)

    def has_sent_today(self, user_id: UUID, day: date) -> bool:
        with self._session_factory() as session:
            existing = session.exec(
                select(DeliveryRecord.id)
                .where(DeliveryRecord.user_id == user_id)
                .where(DeliveryRecord.notification_type == DAILY_MESSAGE_TYPE)
                .where(DeliveryRecord.delivery_date == day)
                .where(DeliveryRecord.status == DeliveryStatus.SENT.value)
                .where(DeliveryRecord.is_test == False)  # noqa: E712
                .limit(1)
            ).first()
            return existing is not None

    def deactivate_subscription(self, subscription_id: UUID) -> None:
        with self._session_factory() as session:
            subscription = session.get(PushSubscriptionRecord, subscription_id)
            if subscription is None or not subscription.is_active:
                return
            subscription.is_active = False
            subscription.deactivated_at = datetime.now(timezone.utc)
            session.add(subscription)
            session.commit()

        logger.info(
            f"Deactivated push subscription {subscription_id}",
            extra={"subscription_id": str(subscription_id)},
        )

    def persist_delivery_record(self, record: DeliveryRecord) -> None:
        with self._session_factory() as session:
            session.add(record)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                if record.is_sent and not record.is_test:
                    raise DuplicateDeliveryError(record.user_id, record.delivery_date) from e
                raise
            session.refresh(record)

    def persist_run_summary(self, summary: RunSummary) -> None:
        try:
            with self._session_factory() as session:
                session.add(summary)
                session.commit()
                session.refresh(summary)
        except SQLAlchemyError as e:
            raise DataStoreError(f"Could not persist run summary: {e}") from e
