"""
Unit tests for ScanScheduler.
"""

import time

from inbox_mirror.scheduler import ScanScheduler


def _scheduler(func, interval=60):
    return ScanScheduler(func, interval_seconds=interval, install_signal_handlers=False)


class TestScanScheduler:
    """Test cases for ScanScheduler."""

    def test_run_once_success(self):
        scheduler = _scheduler(lambda: True)
        scheduler.run_once()
        scheduler.run_once()
        assert scheduler.stats["runs"] == 2
        assert scheduler.stats["successful_runs"] == 2
        assert scheduler.stats["scans_with_new_history"] == 2

    def test_run_once_without_new_history(self):
        scheduler = _scheduler(lambda: False)
        scheduler.run_once()
        assert scheduler.stats["successful_runs"] == 1
        assert scheduler.stats["scans_with_new_history"] == 0

    def test_failure_is_recorded_not_raised(self):
        def boom():
            raise RuntimeError("archive unreachable")

        scheduler = _scheduler(boom)
        scheduler.run_once()
        assert scheduler.stats["failed_runs"] == 1
        assert scheduler.stats["last_error"] == "archive unreachable"
        assert scheduler.get_health()["status"] == "unhealthy"

    def test_start_stop(self):
        calls = []
        scheduler = _scheduler(lambda: calls.append(1) or True, interval=60)
        scheduler.start()
        deadline = time.monotonic() + 5
        while not calls and time.monotonic() < deadline:
            time.sleep(0.01)
        assert scheduler.get_health()["running"] is True
        scheduler.stop(timeout=5)

        assert calls == [1]
        assert scheduler.running is False
        assert not scheduler.thread.is_alive()

    def test_health_after_success(self):
        scheduler = _scheduler(lambda: True)
        scheduler.running = True
        scheduler.run_once()
        health = scheduler.get_health()
        assert health["status"] == "healthy"
        assert health["interval_seconds"] == 60
