"""
Client-side rate limiting for GitHub API writes.

GitHub throttles content-creating requests well below the documented primary
limit, so comment bursts (a long review thread landing at once) are spread
out locally instead of tripping the secondary limit.
"""

from __future__ import annotations
import threading
import time
from collections import deque
from typing import Optional
from inbox_mirror.logging import logger


class RateLimiter:
    """
    Sliding-window rate limiter.

    Allows at most ``max_calls`` acquisitions per ``time_window_seconds``.
    Thread-safe.
    """

    def __init__(self, max_calls: int, time_window_seconds: float = 60):
        if max_calls < 1:
            raise ValueError(f"max_calls must be at least 1, got {max_calls}")
        self.max_calls = max_calls
        self.time_window = time_window_seconds
        self.call_times: deque[float] = deque()
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        while self.call_times and (now - self.call_times[0]) > self.time_window:
            self.call_times.popleft()

    def acquire(self, blocking: bool = True, timeout: Optional[float] = None) -> bool:
        """
        Acquire permission to make an API call.

        Args:
            blocking: If True, wait until a call slot is available
            timeout: Maximum time to wait in seconds (None = wait as long as needed)

        Returns:
            True if permission granted, False if not (non-blocking or timeout)
        """
        now = time.monotonic()
        with self._lock:
            self._prune(now)
            if len(self.call_times) < self.max_calls:
                self.call_times.append(now)
                return True
            if not blocking:
                return False
            wait_time = self.time_window - (now - self.call_times[0]) + 0.01

        if timeout is not None and wait_time > timeout:
            logger.warning(f"Rate limit wait time ({wait_time:.2f}s) exceeds timeout ({timeout}s)")
            return False

        logger.debug(f"Rate limit reached, waiting {wait_time:.2f}s...")
        time.sleep(wait_time)
        remaining = None if timeout is None else max(0.0, timeout - wait_time)
        return self.acquire(blocking=True, timeout=remaining)

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        pass
