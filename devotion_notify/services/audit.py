"""Audit and metrics recording for delivery runs.

Delivery records and run summaries are append-only. The recorder also
computes the run error rate and raises an operational alert (a critical log
line) when it crosses the configured threshold.
"""

import logging

from devotion_notify.models.notification import DeliveryRecord
from devotion_notify.models.run_summary import RunSummary
from devotion_notify.services.store import NotificationStore

logger = logging.getLogger(__name__)

DEFAULT_ALERT_THRESHOLD = 0.10


class AuditRecorder:
    """Writes delivery records and run summaries through the store."""

    def __init__(
        self,
        store: NotificationStore,
        alert_threshold: float = DEFAULT_ALERT_THRESHOLD,
    ) -> None:
        self.store = store
        self.alert_threshold = alert_threshold

    def record_outcome(self, record: DeliveryRecord) -> None:
        """Persist one delivery record.

        Raises:
            DuplicateDeliveryError: A sent record already exists for the day
        """
        self.store.persist_delivery_record(record)
        logger.debug(
            f"Recorded {record.status} delivery for user {record.user_id}",
            extra={
                "user_id": str(record.user_id),
                "status": record.status,
                "is_test": record.is_test,
            },
        )

    def record_run_summary(self, summary: RunSummary) -> None:
        """Persist a run summary.

        Raises:
            DataStoreError: The summary could not be written
        """
        self.store.persist_run_summary(summary)
        logger.info("Run summary recorded", extra=summary.to_dict())

    @staticmethod
    def compute_error_rate(summary: RunSummary) -> float:
        """Fraction of processed recipients that ended in error."""
        if summary.users_processed <= 0:
            return 0.0
        return summary.errors / summary.users_processed

    def check_error_rate(self, summary: RunSummary) -> bool:
        """Log a critical alert when the error rate exceeds the threshold.

        Returns:
            True if the alert fired
        """
        error_rate = self.compute_error_rate(summary)
        if error_rate <= self.alert_threshold:
            return False

        logger.critical(
            f"Daily notification error rate {error_rate:.1%} exceeds "
            f"threshold {self.alert_threshold:.1%}",
            extra={
                "error_rate": error_rate,
                "threshold": self.alert_threshold,
                "users_processed": summary.users_processed,
                "errors": summary.errors,
            },
        )
        return True
