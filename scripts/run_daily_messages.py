#!/usr/bin/env python3
"""Entrypoint for running the daily message delivery cycle.

Usage:
    # Single run (what cron or an external scheduler calls every 15 minutes)
    python scripts/run_daily_messages.py --once

    # Continuous loop for local development (Ctrl+C to stop)
    python scripts/run_daily_messages.py --loop

    # Loop with custom interval
    python scripts/run_daily_messages.py --loop --interval 60

    # Send a test message to one user, ignoring the delivery window
    python scripts/run_daily_messages.py --test-user 3f0c9a4e-1c1b-4c57-9a43-0c1a2b3c4d5e

Environment variables:
    DATABASE_URL: Database connection string (required)
    VAPID_PUBLIC_KEY / VAPID_PRIVATE_KEY: Web Push signing keys (required)
    BREVO_API_KEY: Email provider API key (required)
    DELIVERY_MAX_WORKERS: Recipients processed concurrently (default: 8)
    DELIVERY_WINDOW_MINUTES: Tolerance around preferred time (default: 15)
    WORKER_POLL_INTERVAL_SECONDS: Seconds between cycles in loop mode (default: 900)
"""

import argparse
import logging
import sys
from pathlib import Path
from uuid import UUID

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from devotion_notify.errors import DeliveryPipelineError, RecipientDataError
from devotion_notify.workers import (
    DailyMessageRunner,
    configure_worker_logging,
)


def main() -> int:
    """Main entrypoint for the daily message runner."""
    parser = argparse.ArgumentParser(
        description="Deliver daily spiritual messages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    # Mode selection
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "--once",
        action="store_true",
        help="Run one delivery cycle and exit",
    )
    mode.add_argument(
        "--loop",
        action="store_true",
        help="Run delivery cycles continuously in a loop",
    )
    mode.add_argument(
        "--test-user",
        type=UUID,
        default=None,
        metavar="USER_ID",
        help="Send a test message to one user and exit",
    )

    # Configuration
    parser.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Seconds between cycles (loop mode only)",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=None,
        help="Maximum iterations before stopping (loop mode only)",
    )

    # Logging
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Reduce logging to warnings only",
    )

    args = parser.parse_args()

    # Configure logging
    if args.verbose:
        configure_worker_logging(logging.DEBUG)
    elif args.quiet:
        configure_worker_logging(logging.WARNING)
    else:
        configure_worker_logging(logging.INFO)

    logger = logging.getLogger(__name__)

    try:
        runner = DailyMessageRunner()

        if args.once:
            logger.info("Running daily message cycle once...")
            summary = runner.run_once()

            # Print summary
            print("\n--- Daily Message Run Summary ---")
            print(f"Users processed: {summary.users_processed}")
            print(f"Notifications sent: {summary.notifications_sent}")
            print(f"Errors: {summary.errors}")
            print(f"Skipped: {summary.details.get('skipped', 0)}")
            print(f"Duration: {summary.duration_ms:.0f}ms")
            if summary.details.get("alert_raised"):
                print(f"ALERT: error rate {summary.details['error_rate']:.1%}")

            return 0

        elif args.loop:
            logger.info("Starting daily message loop (Ctrl+C to stop)...")
            runner.run_loop(
                interval_seconds=args.interval,
                max_iterations=args.max_iterations,
            )
            return 0

        elif args.test_user:
            result = runner.worker.send_test(args.test_user)
            print(f"\n--- Test Message for {result.user_id} ---")
            print(f"Title: {result.title}")
            print(f"Success: {result.success}")
            for channel, outcome in result.channels.items():
                print(f"  {channel}: {outcome}")
            if result.error:
                print(f"Error: {result.error}")
            return 0 if result.success else 1

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except RecipientDataError as e:
        logger.error(f"Test message failed: {e.message}")
        return 1
    except DeliveryPipelineError as e:
        logger.error(f"Daily message run failed: {e}", exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
