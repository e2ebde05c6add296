"""Tests for DailyMessageRunner."""

import pytest
from datetime import datetime, timezone
from unittest.mock import Mock, patch

from devotion_notify.errors import DataStoreError
from devotion_notify.models.run_summary import RunSummary
from devotion_notify.workers.runner import DailyMessageRunner

NOW = datetime(2026, 10, 18, 8, 0, tzinfo=timezone.utc)


# ============================================================================
# Run Once Tests
# ============================================================================

class TestRunOnce:
    """Tests for a single cycle."""

    def test_passes_run_timezone(self, runner: DailyMessageRunner, worker: Mock):
        summary = runner.run_once(now=NOW)

        assert summary is worker.run_cycle.return_value
        worker.run_cycle.assert_called_once_with(
            now=NOW,
            automated=True,
            run_timezone=runner.settings.RUN_TIMEZONE,
        )

    def test_datastore_error_propagates(self, runner: DailyMessageRunner, worker: Mock):
        worker.run_cycle.side_effect = DataStoreError("database unreachable")

        with pytest.raises(DataStoreError):
            runner.run_once(now=NOW)


# ============================================================================
# Loop Tests
# ============================================================================

class TestRunLoop:
    """Tests for the interval loop."""

    def test_request_shutdown_stops_after_current_cycle(
        self, runner: DailyMessageRunner, worker: Mock, sleep: Mock
    ):
        def run_cycle(**kwargs):
            runner.request_shutdown()
            return RunSummary()

        worker.run_cycle.side_effect = run_cycle

        runner.run_loop(interval_seconds=60)

        assert worker.run_cycle.call_count == 1
        sleep.assert_not_called()

    def test_failed_iteration_does_not_stop_loop(
        self, runner: DailyMessageRunner, worker: Mock, sleep: Mock
    ):
        worker.run_cycle.side_effect = [DataStoreError("database unreachable"), RunSummary()]

        runner.run_loop(interval_seconds=60, max_iterations=2)

        assert worker.run_cycle.call_count == 2
        sleep.assert_called_once_with(60)

    def test_signal_handler_requests_shutdown(
        self, runner: DailyMessageRunner, worker: Mock, sleep: Mock, signal_mock: Mock
    ):
        def run_cycle(**kwargs):
            handler = signal_mock.call_args_list[0].args[1]
            handler(15, None)
            return RunSummary()

        worker.run_cycle.side_effect = run_cycle

        runner.run_loop(interval_seconds=60, max_iterations=5)

        assert worker.run_cycle.call_count == 1
        assert signal_mock.call_count == 2


# ============================================================================
# Pytest Fixtures
# ============================================================================

@pytest.fixture
def worker():
    worker = Mock()
    worker.run_cycle.return_value = RunSummary()
    return worker


@pytest.fixture
def runner(worker: Mock):
    return DailyMessageRunner(worker=worker)


@pytest.fixture
def sleep():
    with patch("devotion_notify.workers.runner.time.sleep") as sleep_mock:
        yield sleep_mock


@pytest.fixture(autouse=True)
def signal_mock():
    with patch("devotion_notify.workers.runner.signal.signal") as mock:
        yield mock
