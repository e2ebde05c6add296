"""Retry policy for channel sends.

Transient failures are retried with exponential backoff:

    delay = min(base_ms * 2^(attempt - 1), max_ms)

    Attempt 1 fails -> wait 1000ms, attempt 2 fails -> wait 2000ms, attempt 3.

Permanent failures are never retried.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from devotion_notify.channels.base import ChannelOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry parameters for one channel.

    Attributes:
        max_attempts: Total attempts including the first
        base_delay_ms: Delay after the first failed attempt
        max_delay_ms: Upper bound on any single delay
    """

    max_attempts: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 5000

    def delay_ms(self, attempt: int) -> int:
        """Delay before the attempt following `attempt` (1-based)."""
        return min(self.base_delay_ms * (2 ** (attempt - 1)), self.max_delay_ms)

    @classmethod
    def single_attempt(cls) -> "RetryPolicy":
        return cls(max_attempts=1)


@dataclass
class RetryResult:
    """Final outcome of a send after retries."""

    outcome: ChannelOutcome
    attempts: int
    delays_ms: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {**self.outcome.to_dict(), "attempts": self.attempts}


def send_with_retry(
    send: Callable[[], ChannelOutcome],
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "send",
) -> RetryResult:
    """Call `send` until it delivers, fails permanently, or attempts run out.

    Only the calling thread sleeps between attempts.

    Args:
        send: Zero-argument callable performing one attempt
        policy: Retry parameters
        sleep: Sleep function taking seconds (injectable for tests)
        label: Description used in log messages

    Returns:
        RetryResult with the last outcome and number of attempts made
    """
    delays: list[int] = []
    outcome = ChannelOutcome.transient("no attempt made")

    for attempt in range(1, policy.max_attempts + 1):
        outcome = send()

        if outcome.is_delivered or outcome.is_permanent:
            return RetryResult(outcome=outcome, attempts=attempt, delays_ms=delays)

        if attempt < policy.max_attempts:
            delay = policy.delay_ms(attempt)
            delays.append(delay)
            logger.info(
                f"Retry {attempt}/{policy.max_attempts - 1} for {label} in {delay}ms",
                extra={"attempt": attempt, "delay_ms": delay, "detail": outcome.detail},
            )
            sleep(delay / 1000.0)

    return RetryResult(outcome=outcome, attempts=policy.max_attempts, delays_ms=delays)
