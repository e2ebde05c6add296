"""Worker runner for daily message delivery.

Provides entry points for running the delivery cycle:
- run_daily_messages_once(): Single cycle, for cron or an HTTP trigger
- run_daily_messages_loop(): Repeated cycles with an interval (local use)

Production scheduling is external; the loop exists for development.
"""

import logging
import signal
import time
from datetime import datetime, timezone

from devotion_notify.config import get_settings
from devotion_notify.models.run_summary import RunSummary
from devotion_notify.workers.daily_message_worker import (
    DailyMessageWorker,
    build_daily_message_worker,
)

logger = logging.getLogger(__name__)


class DailyMessageRunner:
    """Runs the daily message worker once or on an interval.

    Usage:
        runner = DailyMessageRunner()
        summary = runner.run_once()
    """

    def __init__(self, worker: DailyMessageWorker | None = None) -> None:
        """Initialize the runner.

        Args:
            worker: Worker to run (built from settings if not provided)

        Raises:
            ConfigurationError: Required settings are missing
        """
        self.settings = get_settings()
        self.worker = worker or build_daily_message_worker(self.settings)
        self._logger = logging.getLogger(self.__class__.__name__)
        self._shutdown_requested = False

    def run_once(self, now: datetime | None = None, automated: bool = True) -> RunSummary:
        """Execute one delivery cycle.

        Raises:
            DataStoreError: The datastore was unavailable
        """
        now = now or datetime.now(timezone.utc)
        self._logger.info("Starting daily message run", extra={"now": now.isoformat()})

        summary = self.worker.run_cycle(
            now=now,
            automated=automated,
            run_timezone=self.settings.RUN_TIMEZONE,
        )

        self._logger.info("Daily message run completed", extra=summary.to_dict())
        return summary

    def run_loop(
        self,
        interval_seconds: int | None = None,
        max_iterations: int | None = None,
    ) -> None:
        """Run delivery cycles continuously.

        A cycle that fails with an exception is logged and the loop carries
        on with the next tick.

        Args:
            interval_seconds: Seconds between cycles (default from config)
            max_iterations: Max cycles to run (None for infinite)
        """
        interval = interval_seconds or self.settings.WORKER_POLL_INTERVAL_SECONDS
        iterations = 0

        # Setup signal handlers for clean shutdown
        self._setup_signal_handlers()

        self._logger.info(
            "Starting daily message loop",
            extra={
                "interval_seconds": interval,
                "max_iterations": max_iterations,
            },
        )

        try:
            while not self._shutdown_requested:
                if max_iterations is not None and iterations >= max_iterations:
                    self._logger.info(
                        f"Reached max iterations ({max_iterations}), stopping"
                    )
                    break

                try:
                    summary = self.run_once()
                    self._logger.info(
                        f"Iteration {iterations + 1} complete",
                        extra={
                            "sent": summary.notifications_sent,
                            "errors": summary.errors,
                        },
                    )
                except Exception as e:
                    self._logger.error(
                        f"Iteration {iterations + 1} failed: {e}",
                        exc_info=True,
                    )
                iterations += 1

                if not self._shutdown_requested and (
                    max_iterations is None or iterations < max_iterations
                ):
                    self._logger.debug(f"Sleeping for {interval} seconds")
                    time.sleep(interval)

        except KeyboardInterrupt:
            self._logger.info("Keyboard interrupt received, shutting down")

        self._logger.info(
            "Daily message loop stopped",
            extra={"total_iterations": iterations},
        )

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        def handle_signal(signum, frame):
            self._logger.info(f"Received signal {signum}, requesting shutdown")
            self.request_shutdown()

        signal.signal(signal.SIGINT, handle_signal)
        signal.signal(signal.SIGTERM, handle_signal)

    def request_shutdown(self) -> None:
        """Stop the loop after the cycle in progress finishes."""
        self._shutdown_requested = True


def run_daily_messages_once(now: datetime | None = None) -> RunSummary:
    """Run one automated delivery cycle and return its summary.

    Example:
        >>> from devotion_notify.workers import run_daily_messages_once
        >>> summary = run_daily_messages_once()
        >>> print(f"Sent: {summary.notifications_sent}")
    """
    return DailyMessageRunner().run_once(now=now)


def run_daily_messages_loop(
    interval_seconds: int | None = None,
    max_iterations: int | None = None,
) -> None:
    """Run delivery cycles until interrupted or max_iterations is reached."""
    DailyMessageRunner().run_loop(
        interval_seconds=interval_seconds,
        max_iterations=max_iterations,
    )


def configure_worker_logging(level: int = logging.INFO) -> None:
    """Configure logging for worker processes.

    Args:
        level: Logging level (default: INFO)
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("devotion_notify").setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
