"""
Periodic mirror scans with graceful shutdown support.
"""

from __future__ import annotations
import signal
import threading
import time
from typing import Any, Callable, Dict, Optional
from inbox_mirror.logging import logger


class ScanScheduler:
    """
    Runs a scan function every ``interval_seconds`` in a background thread.

    Scans never overlap: the next one starts only after the previous one
    returned and the interval elapsed. A failed scan is logged and counted;
    the next run starts from whatever cursor was last persisted.
    """

    def __init__(
        self,
        scan_func: Callable[[], bool],
        interval_seconds: int = 300,
        install_signal_handlers: bool = True,
    ) -> None:
        """
        Args:
            scan_func: Function performing one scan; returns True if new
                history was processed
            interval_seconds: Interval between runs in seconds
            install_signal_handlers: Stop gracefully on SIGTERM/SIGINT
                (only possible from the main thread)
        """
        self.scan_func = scan_func
        self.interval_seconds = interval_seconds
        self.running = False
        self._stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None
        self.stats: Dict[str, Any] = {
            "runs": 0,
            "successful_runs": 0,
            "failed_runs": 0,
            "scans_with_new_history": 0,
            "last_run_time": None,
            "last_success_time": None,
            "last_error": None,
        }

        if install_signal_handlers:
            signal.signal(signal.SIGTERM, self._signal_handler)
            signal.signal(signal.SIGINT, self._signal_handler)

    def _signal_handler(self, signum: int, frame) -> None:
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        self._stop_event.set()

    def run_once(self) -> None:
        """Execute one scan, recording the outcome."""
        start_time = time.time()
        try:
            changed = self.scan_func()
        except Exception as e:
            duration = time.time() - start_time
            self.stats["runs"] += 1
            self.stats["failed_runs"] += 1
            self.stats["last_run_time"] = time.time()
            self.stats["last_error"] = str(e)
            logger.exception(f"Scan failed after {duration:.2f}s: {e}")
            return

        self.stats["runs"] += 1
        self.stats["successful_runs"] += 1
        if changed:
            self.stats["scans_with_new_history"] += 1
        self.stats["last_run_time"] = time.time()
        self.stats["last_success_time"] = self.stats["last_run_time"]
        self.stats["last_error"] = None

    def _scheduler_loop(self) -> None:
        logger.info(f"Scheduler started with interval {self.interval_seconds}s")
        while self.running and not self._stop_event.is_set():
            self.run_once()
            self._stop_event.wait(self.interval_seconds)
        self.running = False
        logger.info("Scheduler loop ended")

    def start(self) -> None:
        """Start the scheduler in a background thread."""
        if self.running:
            logger.warning("Scheduler is already running")
            return
        self.running = True
        self._stop_event.clear()
        self.thread = threading.Thread(target=self._scheduler_loop, daemon=False)
        self.thread.start()

    def stop(self, timeout: float = 60.0) -> None:
        """
        Stop the scheduler, letting an in-flight scan finish.

        Args:
            timeout: Maximum time to wait for the current scan to complete
        """
        if not self.running:
            return
        logger.info("Stopping scheduler...")
        self._stop_event.set()
        if self.thread and self.thread.is_alive():
            self.thread.join(timeout=timeout)
            if self.thread.is_alive():
                logger.warning(f"Scheduler thread did not stop within {timeout}s")
            else:
                logger.info("Scheduler stopped gracefully")
        self.running = False

    def get_health(self) -> Dict[str, Any]:
        """Health status and run statistics."""
        is_healthy = (
            self.running
            and self.stats["runs"] > 0
            and self.stats["last_error"] is None
        )
        if self.stats["last_run_time"]:
            if time.time() - self.stats["last_run_time"] > self.interval_seconds * 2:
                is_healthy = False
        return {
            "status": "healthy" if is_healthy else "unhealthy",
            "running": self.running,
            "stats": self.stats.copy(),
            "interval_seconds": self.interval_seconds,
        }

    def wait(self) -> None:
        """Block until the scheduler thread ends (or a signal stops it)."""
        while self.thread and self.thread.is_alive():
            self.thread.join(timeout=1.0)
