"""Rate Limiter - throttles API calls to prevent hitting rate limits."""

import time
from collections import defaultdict, deque
from threading import Lock
from typing import Callable


class RateLimiter:
    """Thread-safe sliding-window rate limiter."""

    def __init__(
        self,
        max_calls: int = 60,
        time_window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize rate limiter.

        Args:
            max_calls: Maximum number of calls allowed in time_window
            time_window: Time window in seconds (default: 60 seconds)
            clock: Monotonic clock
            sleep: Sleep function
        """
        self.max_calls = max_calls
        self.time_window = time_window
        self._clock = clock
        self._sleep = sleep
        self.calls: dict[str, deque] = defaultdict(deque)
        self.lock = Lock()

    def _prune(self, calls: deque, now: float) -> None:
        while calls and now - calls[0] >= self.time_window:
            calls.popleft()

    def wait_if_needed(self, endpoint: str = "default") -> None:
        """
        Block until a call to ``endpoint`` fits in the window, then record it.

        Args:
            endpoint: Endpoint identifier (for per-endpoint limiting)
        """
        with self.lock:
            calls = self.calls[endpoint]
            now = self._clock()
            self._prune(calls, now)
            if len(calls) >= self.max_calls:
                wait_time = calls[0] + self.time_window - now
                if wait_time > 0:
                    self._sleep(wait_time)
                now = self._clock()
                self._prune(calls, now)
            calls.append(now)

    def can_proceed(self, endpoint: str = "default") -> bool:
        with self.lock:
            calls = self.calls[endpoint]
            self._prune(calls, self._clock())
            return len(calls) < self.max_calls
