"""Tests for SQLNotificationStore against in-memory SQLite.

Tests cover:
- Recipient and subscription queries
- Already-sent-today lookups
- Subscription deactivation
- The partial unique index on sent daily records
- Run summary persistence
- A full worker cycle on the SQL store
"""

import random

import pytest
from datetime import date, datetime, timezone
from uuid import uuid4

from sqlmodel import Session, select

from devotion_notify.channels.base import ChannelOutcome, EmailSender, PushSender
from devotion_notify.errors import DuplicateDeliveryError
from devotion_notify.models.notification import DeliveryRecord
from devotion_notify.models.preference import RecipientPreference, UserProfile
from devotion_notify.models.run_summary import RunSummary
from devotion_notify.models.subscription import PushSubscriptionRecord
from devotion_notify.services.messages import MessageGenerator
from devotion_notify.services.store import SQLNotificationStore
from devotion_notify.workers.daily_message_worker import DailyMessageWorker

TODAY = date(2026, 10, 18)


# ============================================================================
# Query Tests
# ============================================================================

class TestRecipientQueries:
    """Tests for recipient, profile and subscription lookups."""

    def test_load_eligible_recipients_filters_flags(self, db_session: Session, store):
        active = add_pref(db_session)
        add_pref(db_session, is_active=False)
        add_pref(db_session, push_enabled=False, email_enabled=False)
        email_only = add_pref(db_session, push_enabled=False, email_enabled=True)

        recipients = store.load_eligible_recipients()

        assert {r.user_id for r in recipients} == {active.user_id, email_only.user_id}

    def test_get_preference_and_profile(self, db_session: Session, store):
        pref = add_pref(db_session)
        db_session.add(UserProfile(id=pref.user_id, email="naomi@example.com", full_name="Naomi"))
        db_session.commit()

        assert store.get_preference(pref.user_id).timezone == "UTC"
        assert store.get_profile(pref.user_id).email == "naomi@example.com"
        assert store.get_preference(uuid4()) is None
        assert store.get_profile(uuid4()) is None

    def test_load_active_subscriptions(self, db_session: Session, store):
        user_id = uuid4()
        newer = add_subscription(db_session, user_id, hour=5)
        older = add_subscription(db_session, user_id, hour=1)
        add_subscription(db_session, user_id, hour=2, is_active=False)
        add_subscription(db_session, uuid4(), hour=3)

        subscriptions = store.load_active_subscriptions(user_id)

        assert [s.id for s in subscriptions] == [older.id, newer.id]


# ============================================================================
# Already-Sent Tests
# ============================================================================

class TestHasSentToday:
    """Tests for has_sent_today."""

    def test_sent_record_today(self, db_session: Session, store):
        user_id = uuid4()
        add_record(db_session, user_id, status="sent")

        assert store.has_sent_today(user_id, TODAY) is True

    def test_other_day(self, db_session: Session, store):
        user_id = uuid4()
        add_record(db_session, user_id, status="sent", day=date(2026, 10, 17))

        assert store.has_sent_today(user_id, TODAY) is False

    def test_failed_and_test_records_ignored(self, db_session: Session, store):
        user_id = uuid4()
        add_record(db_session, user_id, status="failed")
        add_record(db_session, user_id, status="sent", is_test=True)

        assert store.has_sent_today(user_id, TODAY) is False


# ============================================================================
# Write Tests
# ============================================================================

class TestWrites:
    """Tests for deactivation and append-only writes."""

    def test_deactivate_subscription(self, db_session: Session, store):
        subscription = add_subscription(db_session, uuid4(), hour=1)

        store.deactivate_subscription(subscription.id)

        db_session.expire_all()
        stored = db_session.get(PushSubscriptionRecord, subscription.id)
        assert stored.is_active is False
        assert stored.deactivated_at is not None

    def test_deactivate_unknown_subscription_is_noop(self, store):
        store.deactivate_subscription(uuid4())

    def test_second_sent_record_same_day_is_duplicate(self, store):
        user_id = uuid4()
        store.persist_delivery_record(make_record(user_id, status="sent"))

        with pytest.raises(DuplicateDeliveryError):
            store.persist_delivery_record(make_record(user_id, status="sent"))

    def test_failed_and_test_records_are_not_unique(self, db_session: Session, store):
        user_id = uuid4()
        store.persist_delivery_record(make_record(user_id, status="failed"))
        store.persist_delivery_record(make_record(user_id, status="failed"))
        store.persist_delivery_record(make_record(user_id, status="sent"))
        store.persist_delivery_record(make_record(user_id, status="sent", is_test=True))
        store.persist_delivery_record(make_record(user_id, status="sent", is_test=True))

        records = db_session.exec(
            select(DeliveryRecord).where(DeliveryRecord.user_id == user_id)
        ).all()
        assert len(records) == 5

    def test_record_metadata_round_trip(self, db_session: Session, store):
        record = make_record(uuid4(), status="sent")
        record.details = {"verse": "Psalm 23:1", "channels": {"web_push": []}}

        store.persist_delivery_record(record)

        db_session.expire_all()
        stored = db_session.get(DeliveryRecord, record.id)
        assert stored.details == {"verse": "Psalm 23:1", "channels": {"web_push": []}}

    def test_persist_run_summary(self, db_session: Session, store):
        summary = RunSummary(
            users_processed=3,
            notifications_sent=2,
            errors=1,
            duration_ms=12.5,
            details={"skipped": 4},
        )

        store.persist_run_summary(summary)

        stored = db_session.exec(select(RunSummary)).all()
        assert len(stored) == 1
        assert stored[0].errors == 1
        assert stored[0].details == {"skipped": 4}


# ============================================================================
# Integration Tests
# ============================================================================

class TestWorkerOnSQLStore:
    """A delivery cycle end to end on the SQL store."""

    def test_cycle_writes_one_record_and_summary(self, db_session: Session, store):
        pref = add_pref(db_session)
        db_session.add(UserProfile(id=pref.user_id, email="lydia@example.com"))
        gone = add_subscription(db_session, pref.user_id, hour=1)
        alive = add_subscription(db_session, pref.user_id, hour=2)

        push_sender = StubPushSender({gone.id: ChannelOutcome.permanent("410", 410)})
        worker = DailyMessageWorker(
            store=store,
            push_sender=push_sender,
            email_sender=StubEmailSender(),
            generator=MessageGenerator(random.Random(5)),
            max_workers=1,
            sleep=lambda seconds: None,
        )
        now = datetime(2026, 10, 18, 8, 0, tzinfo=timezone.utc)

        first = worker.run_cycle(now)
        second = worker.run_cycle(now)

        db_session.expire_all()
        records = db_session.exec(select(DeliveryRecord)).all()
        assert [r.status for r in records] == ["sent"]
        assert db_session.get(PushSubscriptionRecord, gone.id).is_active is False
        assert db_session.get(PushSubscriptionRecord, alive.id).is_active is True
        assert first.notifications_sent == 1
        assert second.notifications_sent == 0
        assert len(db_session.exec(select(RunSummary)).all()) == 2


# ============================================================================
# Stubs and Helpers
# ============================================================================

class StubPushSender(PushSender):
    def __init__(self, outcomes):
        self.outcomes = outcomes

    def send(self, subscription, message):
        return self.outcomes.get(subscription.id, ChannelOutcome.delivered(201))


class StubEmailSender(EmailSender):
    def send(self, email_address, message):
        return ChannelOutcome.delivered(201)


def add_pref(db_session: Session, **overrides) -> RecipientPreference:
    values = dict(
        user_id=uuid4(),
        timezone="UTC",
        preferred_time="08:00",
        push_enabled=True,
        email_enabled=False,
        is_active=True,
    )
    values.update(overrides)
    pref = RecipientPreference(**values)
    db_session.add(pref)
    db_session.commit()
    db_session.refresh(pref)
    return pref


def add_subscription(db_session: Session, user_id, hour: int, is_active: bool = True):
    subscription = PushSubscriptionRecord(
        user_id=user_id,
        endpoint=f"https://push.example.com/{uuid4()}",
        auth_key="auth",
        p256dh_key="p256dh",
        is_active=is_active,
        created_at=datetime(2026, 1, 1, hour, tzinfo=timezone.utc),
    )
    db_session.add(subscription)
    db_session.commit()
    db_session.refresh(subscription)
    return subscription


def make_record(user_id, status: str, is_test: bool = False, day: date = TODAY) -> DeliveryRecord:
    return DeliveryRecord(
        user_id=user_id,
        title="Daily Encouragement",
        message="God loves you unconditionally.",
        status=status,
        delivery_date=day,
        is_test=is_test,
    )


def add_record(db_session: Session, user_id, status: str, is_test: bool = False, day: date = TODAY):
    record = make_record(user_id, status, is_test, day)
    db_session.add(record)
    db_session.commit()
    return record


# ============================================================================
# Pytest Fixtures
# ============================================================================

@pytest.fixture
def engine():
    """Create an in-memory database shared by the store and the test session."""
    from sqlmodel import create_engine, SQLModel
    from sqlmodel.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Import all models to register them
    from devotion_notify.models import (  # noqa: F401
        DeliveryRecord,
        PushSubscriptionRecord,
        RecipientPreference,
        RunSummary,
        UserProfile,
    )

    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(engine):
    """Create a test database session."""
    with Session(engine) as session:
        yield session


@pytest.fixture
def store(engine):
    return SQLNotificationStore(engine)
