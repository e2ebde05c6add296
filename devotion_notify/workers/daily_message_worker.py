"""Daily spiritual message worker.

Responsibilities:
- Re-check each candidate recipient's preferences right before sending
- Apply the delivery window and already-sent-today checks
- Generate the message and fan it out to push subscriptions and email
- Retry transient push failures, deactivate subscriptions that are gone
- Write exactly one delivery record per attempted recipient
- Summarize the run and raise an alert on a high error rate

Recipient flow:
    pending -> skipped (inactive, not due, already sent, nothing to deliver to)
    pending -> generated -> sending -> sent | partially failed | failed
"""

import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime, time as dt_time, timezone
from typing import Any
from uuid import UUID

from devotion_notify.channels.base import ChannelOutcome, EmailSender, PushSender
from devotion_notify.channels.email import BrevoEmailSender
from devotion_notify.channels.web_push import WebPushSender
from devotion_notify.config import Settings, get_settings
from devotion_notify.errors import DuplicateDeliveryError, RecipientDataError
from devotion_notify.models.notification import (
    DAILY_MESSAGE_TYPE,
    DeliveryRecord,
    DeliveryStatus,
    NotificationChannel,
)
from devotion_notify.models.preference import RecipientPreference, UserProfile
from devotion_notify.models.run_summary import DAILY_NOTIFICATIONS_JOB, RunSummary
from devotion_notify.models.subscription import PushSubscriptionRecord
from devotion_notify.services.audit import AuditRecorder
from devotion_notify.services.eligibility import (
    DEFAULT_PREFERRED_TIME,
    DEFAULT_WINDOW_HOURS,
    is_eligible,
    parse_preferred_time,
    within_delivery_window,
)
from devotion_notify.services.messages import (
    TEST_TITLE_PREFIX,
    ExperienceTier,
    GeneratedMessage,
    MessageGenerator,
)
from devotion_notify.services.store import NotificationStore, SQLNotificationStore
from devotion_notify.workers.base import ItemResult, ItemStatus, WorkerBase
from devotion_notify.workers.retry import RetryPolicy, send_with_retry

logger = logging.getLogger(__name__)

# Used on failed records written before a message could be generated
FALLBACK_TITLE = "Daily Spiritual Message"


def _as_utc(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


@dataclass
class DeliveryAttempt:
    """Channel outcomes for one recipient."""

    push: list[dict[str, Any]] = field(default_factory=list)
    email: dict[str, Any] | None = None
    delivered_channels: list[NotificationChannel] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def delivered(self) -> bool:
        return bool(self.delivered_channels)

    @property
    def partial(self) -> bool:
        return self.delivered and bool(self.errors)

    def channels_dict(self) -> dict[str, Any]:
        channels: dict[str, Any] = {}
        if self.push:
            channels[NotificationChannel.WEB_PUSH.value] = self.push
        if self.email is not None:
            channels[NotificationChannel.EMAIL.value] = self.email
        return channels


@dataclass
class ManualDeliveryResult:
    """Direct result of a manual test send to one user."""

    user_id: UUID
    success: bool
    title: str
    channels: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    record_id: UUID | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": str(self.user_id),
            "success": self.success,
            "title": self.title,
            "channels": self.channels,
            "error": self.error,
            "record_id": str(self.record_id) if self.record_id else None,
        }


class DailyMessageWorker(WorkerBase[RecipientPreference]):
    """Worker that delivers the daily spiritual message.

    Each run is stateless; whether a recipient already got today's message
    is read from the delivery records, and the partial unique index on
    sent records settles races between overlapping runs.
    """

    def __init__(
        self,
        store: NotificationStore,
        push_sender: PushSender,
        email_sender: EmailSender,
        generator: MessageGenerator | None = None,
        recorder: AuditRecorder | None = None,
        retry_policy: RetryPolicy | None = None,
        max_workers: int = 8,
        window_hours: float = DEFAULT_WINDOW_HOURS,
        default_time: dt_time = DEFAULT_PREFERRED_TIME,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the daily message worker.

        Args:
            store: Datastore boundary
            push_sender: Web Push channel
            email_sender: Email channel
            generator: Message generator (unseeded by default)
            recorder: Audit recorder (built on store by default)
            retry_policy: Push retry policy
            max_workers: Recipients processed concurrently
            window_hours: Tolerance around the preferred local time
            default_time: Preferred time used when the stored one is unusable
            sleep: Sleep function used between push retries
        """
        super().__init__(max_workers=max_workers)
        self.store = store
        self.push_sender = push_sender
        self.email_sender = email_sender
        self.generator = generator or MessageGenerator()
        self.recorder = recorder or AuditRecorder(store)
        self.retry_policy = retry_policy or RetryPolicy()
        self.window_hours = window_hours
        self.default_time = default_time
        self.sleep = sleep

    @property
    def worker_name(self) -> str:
        return "DailyMessageWorker"

    def get_item_id(self, item: RecipientPreference) -> str:
        return str(item.user_id)

    def fetch_pending(self, now: datetime) -> list[RecipientPreference]:
        """Load active recipients with at least one enabled channel."""
        return self.store.load_eligible_recipients()

    def run_cycle(
        self,
        now: datetime | None = None,
        automated: bool = True,
        run_timezone: str = "UTC",
    ) -> RunSummary:
        """Run one delivery cycle and summarize it.

        Args:
            now: Instant to evaluate delivery windows against (defaults to now)
            automated: Whether this is a scheduled run; only automated runs
                persist a run summary
            run_timezone: Nominal zone recorded on the summary

        Returns:
            RunSummary with processed/sent/error counts

        Raises:
            DataStoreError: Recipients could not be loaded or the summary
                could not be persisted
        """
        now = _as_utc(now or datetime.now(timezone.utc))

        self._logger.info(
            f"[{self.worker_name}] Starting daily message cycle",
            extra={"now": now.isoformat(), "automated": automated},
        )

        result = self.run(now)

        failed_user_ids = [item.item_id for item in result.items if item.status == ItemStatus.FAILED]
        skip_reasons: dict[str, int] = {}
        for item in result.items:
            if item.status == ItemStatus.SKIPPED:
                reason = item.metadata.get("reason", "unknown")
                skip_reasons[reason] = skip_reasons.get(reason, 0) + 1

        summary = RunSummary(
            job_type=DAILY_NOTIFICATIONS_JOB,
            run_time=now,
            users_processed=result.attempted_count,
            notifications_sent=result.processed_count,
            errors=result.failed_count,
            timezone=run_timezone,
            duration_ms=result.duration_ms,
            automated=automated,
        )
        error_rate = self.recorder.compute_error_rate(summary)
        alert_raised = self.recorder.check_error_rate(summary)
        summary.details = {
            "candidates": len(result.items),
            "skipped": result.skipped_count,
            "skip_reasons": skip_reasons,
            "partial_deliveries": sum(1 for item in result.items if item.metadata.get("partial")),
            "failed_user_ids": failed_user_ids,
            "error_rate": error_rate,
            "alert_raised": alert_raised,
        }

        if automated:
            self.recorder.record_run_summary(summary)

        self._logger.info(
            f"[{self.worker_name}] Daily message cycle complete",
            extra=summary.to_dict(),
        )
        return summary

    def process_item(self, item: RecipientPreference, now: datetime) -> ItemResult:
        """Process one candidate recipient.

        An unexpected error still leaves a failed delivery record behind
        before it is re-raised to the bulkhead.
        """
        try:
            return self._process_recipient(item, now)
        except Exception as e:
            self._record_unexpected_failure(item.user_id, e, _as_utc(now).date())
            raise

    def _process_recipient(self, item: RecipientPreference, now: datetime) -> ItemResult:
        user_id = item.user_id
        item_id = str(user_id)
        today = _as_utc(now).date()

        try:
            pref = self.store.get_preference(user_id)
            if pref is None:
                raise RecipientDataError(user_id, "notification preferences not found")

            if not pref.is_active or not pref.has_enabled_channel:
                self._logger.debug(
                    f"[{self.worker_name}] Preferences for {user_id} disabled since load, skipping"
                )
                return ItemResult.skipped(item_id, "preference_disabled")

            if not within_delivery_window(now, pref, self.window_hours, self.default_time):
                return ItemResult.skipped(item_id, "outside_window")

            already_sent = self.store.has_sent_today(user_id, today)
            if not is_eligible(now, pref, already_sent, self.window_hours, self.default_time):
                return ItemResult.skipped(item_id, "already_sent")

            profile = self.store.get_profile(user_id)
            if profile is None:
                raise RecipientDataError(user_id, "user profile not found")

        except RecipientDataError as e:
            self._record_data_failure(e, today, is_test=False)
            return ItemResult(item_id=item_id, status=ItemStatus.FAILED, error=e.message)

        subscriptions = self.store.load_active_subscriptions(user_id) if pref.push_enabled else []
        if not subscriptions and not pref.email_enabled:
            self._logger.info(
                f"[{self.worker_name}] No active push subscriptions for {user_id} "
                f"and email disabled, skipping",
                extra={"user_id": item_id},
            )
            return ItemResult.skipped(item_id, "no_deliverable_channel")

        message = self.generator.generate(pref.experience_tier)
        attempt = self._deliver(pref, profile, subscriptions, message)
        record = self._build_record(pref, message, attempt, today, is_test=False)

        try:
            self.recorder.record_outcome(record)
        except DuplicateDeliveryError:
            self._logger.info(
                f"[{self.worker_name}] Daily message for {user_id} already recorded by "
                f"another run, treating as duplicate",
                extra={"user_id": item_id, "delivery_date": today.isoformat()},
            )
            return ItemResult.skipped(item_id, "duplicate")

        if attempt.delivered:
            self._logger.info(
                f"[{self.worker_name}] Delivered daily message to {user_id}",
                extra={
                    "user_id": item_id,
                    "channels": [c.value for c in attempt.delivered_channels],
                    "partial": attempt.partial,
                },
            )
            return ItemResult(
                item_id=item_id,
                status=ItemStatus.COMPLETED,
                metadata={"partial": attempt.partial},
            )

        self._logger.warning(
            f"[{self.worker_name}] All channels failed for {user_id}",
            extra={"user_id": item_id, "errors": attempt.errors},
        )
        return ItemResult(
            item_id=item_id,
            status=ItemStatus.FAILED,
            error="; ".join(attempt.errors)[:500],
        )

    def send_test(self, user_id: UUID, now: datetime | None = None) -> ManualDeliveryResult:
        """Send a test message to one user.

        Skips the delivery window and already-sent checks. The title is
        prefixed with "[TEST] " and the record is stored as a test record.

        Raises:
            RecipientDataError: The user's preferences or profile are missing
        """
        now = _as_utc(now or datetime.now(timezone.utc))
        today = now.date()

        pref = self.store.get_preference(user_id)
        profile = self.store.get_profile(user_id) if pref is not None else None
        if pref is None or profile is None:
            error = RecipientDataError(
                user_id,
                "notification preferences not found" if pref is None else "user profile not found",
            )
            self._record_data_failure(error, today, is_test=True)
            raise error

        message = self.generator.generate(pref.experience_tier).with_title_prefix(TEST_TITLE_PREFIX)
        subscriptions = self.store.load_active_subscriptions(user_id) if pref.push_enabled else []

        if not subscriptions and not pref.email_enabled:
            attempt = DeliveryAttempt(errors=["no active push subscriptions and email disabled"])
        else:
            attempt = self._deliver(pref, profile, subscriptions, message)

        record = self._build_record(pref, message, attempt, today, is_test=True)
        self.recorder.record_outcome(record)

        self._logger.info(
            f"[{self.worker_name}] Test message for {user_id} "
            f"{'delivered' if attempt.delivered else 'failed'}",
            extra={"user_id": str(user_id), "channels": attempt.channels_dict()},
        )

        return ManualDeliveryResult(
            user_id=user_id,
            success=attempt.delivered,
            title=message.title,
            channels=attempt.channels_dict(),
            error="; ".join(attempt.errors) or None,
            record_id=record.id,
        )

    def _deliver(
        self,
        pref: RecipientPreference,
        profile: UserProfile,
        subscriptions: list[PushSubscriptionRecord],
        message: GeneratedMessage,
    ) -> DeliveryAttempt:
        """Fan the message out to every enabled channel independently.

        Each subscription and the email send run on their own thread, so one
        subscription's backoff never delays the others.
        """
        attempt = DeliveryAttempt()
        push_targets = subscriptions if pref.push_enabled else []

        with ThreadPoolExecutor(
            max_workers=len(push_targets) + 1,
            thread_name_prefix=f"{self.worker_name}-channels",
        ) as pool:
            push_futures = [
                pool.submit(self._send_push, subscription, message)
                for subscription in push_targets
            ]
            email_future = (
                pool.submit(self._send_email, profile, message) if pref.email_enabled else None
            )

        if pref.push_enabled:
            push_delivered = False
            for subscription, future in zip(push_targets, push_futures):
                outcome_dict = future.result()
                attempt.push.append(outcome_dict)
                if outcome_dict["status"] == "delivered":
                    push_delivered = True
                else:
                    attempt.errors.append(f"push {subscription.id}: {outcome_dict['detail']}")
            if push_delivered:
                attempt.delivered_channels.append(NotificationChannel.WEB_PUSH)

        if email_future is not None:
            outcome = email_future.result()
            attempt.email = outcome.to_dict()
            if outcome.is_delivered:
                attempt.delivered_channels.append(NotificationChannel.EMAIL)
            else:
                attempt.errors.append(f"email: {outcome.detail}")

        return attempt

    def _send_push(
        self, subscription: PushSubscriptionRecord, message: GeneratedMessage
    ) -> dict[str, Any]:
        try:
            retry_result = send_with_retry(
                lambda: self.push_sender.send(subscription, message),
                self.retry_policy,
                sleep=self.sleep,
                label=f"push subscription {subscription.id}",
            )
        except Exception as e:
            self._logger.error(
                f"[{self.worker_name}] Push sender raised for subscription {subscription.id}",
                extra={"subscription_id": str(subscription.id), "error": str(e)},
                exc_info=True,
            )
            return {
                "subscription_id": str(subscription.id),
                **ChannelOutcome.transient(f"unexpected error: {e}"[:500]).to_dict(),
                "attempts": 1,
            }

        outcome = retry_result.outcome
        if outcome.is_permanent:
            self._deactivate(subscription)

        return {"subscription_id": str(subscription.id), **retry_result.to_dict()}

    def _deactivate(self, subscription: PushSubscriptionRecord) -> None:
        try:
            self.store.deactivate_subscription(subscription.id)
        except Exception as e:
            self._logger.error(
                f"[{self.worker_name}] Could not deactivate subscription {subscription.id}",
                extra={"subscription_id": str(subscription.id), "error": str(e)},
                exc_info=True,
            )

    def _send_email(self, profile: UserProfile, message: GeneratedMessage) -> ChannelOutcome:
        if not profile.email:
            return ChannelOutcome.permanent("user profile has no email address")
        try:
            return self.email_sender.send(profile.email, message)
        except Exception as e:
            self._logger.error(
                f"[{self.worker_name}] Email sender raised for user {profile.id}",
                extra={"user_id": str(profile.id), "error": str(e)},
                exc_info=True,
            )
            return ChannelOutcome.transient(f"unexpected error: {e}"[:500])

    def _build_record(
        self,
        pref: RecipientPreference,
        message: GeneratedMessage,
        attempt: DeliveryAttempt,
        day: date,
        is_test: bool,
    ) -> DeliveryRecord:
        details: dict[str, Any] = {
            **message.to_metadata(),
            "tier": ExperienceTier.parse(pref.experience_tier).value,
            "channels": attempt.channels_dict(),
        }
        if attempt.delivered:
            details["delivered_via"] = attempt.delivered_channels[0].value
            details["partial"] = attempt.partial
        if attempt.errors:
            details["error"] = "; ".join(attempt.errors)[:1000]

        return DeliveryRecord(
            user_id=pref.user_id,
            notification_type=DAILY_MESSAGE_TYPE,
            title=message.title,
            message=message.body,
            status=(DeliveryStatus.SENT if attempt.delivered else DeliveryStatus.FAILED).value,
            delivery_date=day,
            is_test=is_test,
            details=details,
        )

    def _record_data_failure(self, error: RecipientDataError, day: date, is_test: bool) -> None:
        self._logger.warning(
            f"[{self.worker_name}] Recipient data missing for {error.user_id}: {error.message}",
            extra={"user_id": str(error.user_id), "error": error.message},
        )
        self.recorder.record_outcome(
            DeliveryRecord(
                user_id=error.user_id,
                notification_type=DAILY_MESSAGE_TYPE,
                title=f"{TEST_TITLE_PREFIX}{FALLBACK_TITLE}" if is_test else FALLBACK_TITLE,
                message="",
                status=DeliveryStatus.FAILED.value,
                delivery_date=day,
                is_test=is_test,
                details={"error": error.message, "error_type": "recipient_data"},
            )
        )

    def _record_unexpected_failure(self, user_id: UUID, error: Exception, day: date) -> None:
        error_msg = str(error)[:500]
        try:
            self.recorder.record_outcome(
                DeliveryRecord(
                    user_id=user_id,
                    notification_type=DAILY_MESSAGE_TYPE,
                    title=FALLBACK_TITLE,
                    message="",
                    status=DeliveryStatus.FAILED.value,
                    delivery_date=day,
                    is_test=False,
                    details={
                        "error": error_msg,
                        "error_type": "unexpected",
                        "exception": type(error).__name__,
                    },
                )
            )
        except Exception as e:
            # The error is still counted on the run summary
            self._logger.error(
                f"[{self.worker_name}] Could not record failure for {user_id}",
                extra={"user_id": str(user_id), "error": str(e)},
                exc_info=True,
            )


def build_daily_message_worker(settings: Settings | None = None) -> DailyMessageWorker:
    """Build a worker wired to the configured database and channels.

    Raises:
        ConfigurationError: A required setting is missing
    """
    settings = settings or get_settings()
    settings.validate()
    logger.debug("Building daily message worker", extra={"max_workers": settings.DELIVERY_MAX_WORKERS})

    store = SQLNotificationStore()
    return DailyMessageWorker(
        store=store,
        push_sender=WebPushSender.from_settings(settings),
        email_sender=BrevoEmailSender.from_settings(settings),
        recorder=AuditRecorder(store, alert_threshold=settings.ERROR_RATE_ALERT_THRESHOLD),
        retry_policy=RetryPolicy(
            max_attempts=settings.PUSH_MAX_ATTEMPTS,
            base_delay_ms=settings.PUSH_BACKOFF_BASE_MS,
            max_delay_ms=settings.PUSH_BACKOFF_MAX_MS,
        ),
        max_workers=settings.DELIVERY_MAX_WORKERS,
        window_hours=settings.DELIVERY_WINDOW_MINUTES / 60.0,
        default_time=parse_preferred_time(settings.DEFAULT_PREFERRED_TIME),
    )
