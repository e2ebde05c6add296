"""Base worker abstraction for scheduled delivery cycles.

A worker cycle:
1. fetch_pending() - load the candidate items for this tick
2. process_item() - handle one item on a bounded thread pool
3. aggregate per-item results into a WorkerResult

An exception raised while processing one item is contained to that item;
it never aborts the rest of the cycle. Exceptions from fetch_pending()
propagate to the caller.
"""

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)


class WorkerStatus(str, Enum):
    """Status of a worker run."""

    SUCCESS = "success"
    PARTIAL = "partial"  # Some items processed, some failed
    FAILED = "failed"
    NO_WORK = "no_work"


class ItemStatus(str, Enum):
    """Final state of one item in a cycle."""

    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ItemResult:
    """Result of processing one item.

    Attributes:
        item_id: Identifier used in logs
        status: Completed, failed, or skipped
        error: Error detail for failed items
        metadata: Worker-specific detail
    """

    item_id: str
    status: ItemStatus
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def skipped(cls, item_id: str, reason: str) -> "ItemResult":
        return cls(item_id=item_id, status=ItemStatus.SKIPPED, metadata={"reason": reason})


@dataclass
class WorkerResult:
    """Result of a worker processing cycle.

    Attributes:
        status: Overall status of the worker run
        processed_count: Number of items successfully processed
        failed_count: Number of items that failed
        skipped_count: Number of items skipped without processing
        duration_ms: Time taken for the processing cycle
        errors: List of error details for failed items
        items: Per-item results
        metadata: Additional worker-specific metadata
    """

    status: WorkerStatus
    processed_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0
    duration_ms: float = 0.0
    errors: list[dict[str, Any]] = field(default_factory=list)
    items: list[ItemResult] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def attempted_count(self) -> int:
        return self.processed_count + self.failed_count

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "status": self.status.value,
            "processed_count": self.processed_count,
            "failed_count": self.failed_count,
            "skipped_count": self.skipped_count,
            "duration_ms": self.duration_ms,
            "errors": self.errors,
            "metadata": self.metadata,
        }


# Generic type for work items
T = TypeVar("T")


class WorkerBase(ABC, Generic[T]):
    """Abstract base class for scheduled workers.

    Subclasses implement fetch_pending(), process_item() and get_item_id().
    """

    def __init__(self, max_workers: int = 8) -> None:
        """Initialize the worker.

        Args:
            max_workers: Upper bound on items processed concurrently
        """
        self.max_workers = max(1, max_workers)
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    @abstractmethod
    def worker_name(self) -> str:
        """Return the worker name for logging."""
        pass

    @abstractmethod
    def fetch_pending(self, now: datetime) -> list[T]:
        """Fetch the items to consider on this tick.

        Raises:
            DataStoreError: If the items cannot be loaded
        """
        pass

    @abstractmethod
    def process_item(self, item: T, now: datetime) -> ItemResult:
        """Process a single item.

        Args:
            item: The item to process
            now: Instant the cycle was started for

        Returns:
            ItemResult describing what happened
        """
        pass

    @abstractmethod
    def get_item_id(self, item: T) -> str:
        pass

    def _process_isolated(self, item: T, now: datetime) -> ItemResult:
        item_id = self.get_item_id(item)
        try:
            return self.process_item(item, now)
        except Exception as e:
            error_msg = str(e)[:500]  # Truncate long errors
            self._logger.error(
                f"[{self.worker_name}] Failed to process item {item_id}",
                extra={"item_id": item_id, "error": error_msg},
                exc_info=True,
            )
            return ItemResult(item_id=item_id, status=ItemStatus.FAILED, error=error_msg)

    def run(self, now: datetime) -> WorkerResult:
        """Execute one processing cycle.

        Args:
            now: Instant the cycle runs for

        Returns:
            WorkerResult with processing statistics
        """
        start_time = datetime.now(timezone.utc)

        items = self.fetch_pending(now)

        if not items:
            self._logger.debug(f"[{self.worker_name}] No pending items")
            return WorkerResult(
                status=WorkerStatus.NO_WORK,
                duration_ms=self._elapsed_ms(start_time),
            )

        self._logger.info(
            f"[{self.worker_name}] Found {len(items)} items to consider",
            extra={"max_workers": self.max_workers},
        )

        with ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(items)),
            thread_name_prefix=self.worker_name,
        ) as pool:
            item_results = list(pool.map(lambda item: self._process_isolated(item, now), items))

        processed = 0
        failed = 0
        skipped = 0
        errors: list[dict[str, Any]] = []
        for item_result in item_results:
            if item_result.status == ItemStatus.SKIPPED:
                skipped += 1
            elif item_result.status == ItemStatus.FAILED:
                failed += 1
                errors.append({"item_id": item_result.item_id, "error": item_result.error})
            else:
                processed += 1

        # Determine overall status
        if failed == 0 and processed > 0:
            status = WorkerStatus.SUCCESS
        elif processed > 0 and failed > 0:
            status = WorkerStatus.PARTIAL
        elif failed > 0:
            status = WorkerStatus.FAILED
        else:
            status = WorkerStatus.NO_WORK

        result = WorkerResult(
            status=status,
            processed_count=processed,
            failed_count=failed,
            skipped_count=skipped,
            duration_ms=self._elapsed_ms(start_time),
            errors=errors,
            items=item_results,
        )

        self._logger.info(
            f"[{self.worker_name}] Cycle complete",
            extra=result.to_dict(),
        )

        return result

    def _elapsed_ms(self, start: datetime) -> float:
        """Calculate elapsed time in milliseconds."""
        return (datetime.now(timezone.utc) - start).total_seconds() * 1000
