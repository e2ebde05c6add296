"""Background workers for scheduled daily message delivery.

A cycle is triggered externally (cron, HTTP trigger, CLI) and runs to
completion:
- run_daily_messages_once(): Single delivery cycle
- run_daily_messages_loop(): Repeated cycles for local development
"""

from devotion_notify.workers.base import (
    ItemResult,
    ItemStatus,
    WorkerBase,
    WorkerResult,
    WorkerStatus,
)
from devotion_notify.workers.daily_message_worker import (
    DailyMessageWorker,
    ManualDeliveryResult,
    build_daily_message_worker,
)
from devotion_notify.workers.retry import RetryPolicy, RetryResult, send_with_retry
from devotion_notify.workers.runner import (
    DailyMessageRunner,
    configure_worker_logging,
    run_daily_messages_loop,
    run_daily_messages_once,
)

__all__ = [
    # Base classes
    "ItemResult",
    "ItemStatus",
    "WorkerBase",
    "WorkerResult",
    "WorkerStatus",
    # Retry
    "RetryPolicy",
    "RetryResult",
    "send_with_retry",
    # Workers
    "DailyMessageWorker",
    "ManualDeliveryResult",
    "build_daily_message_worker",
    # Runner
    "DailyMessageRunner",
    "run_daily_messages_once",
    "run_daily_messages_loop",
    "configure_worker_logging",
]
