"""Sliding-window admission gate for outbound API calls."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
import threading
import time


class RateLimiter:
    """Allows at most ``max_requests`` calls per ``window_seconds``.

    ``wait_for_slot`` blocks until a slot is free, then records the call.
    Safe to share between worker threads.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._timestamps: deque[float] = deque()
        self._lock = threading.Lock()

    def wait_for_slot(self) -> None:
        with self._lock:
            now = self._clock()
            while self._timestamps and now - self._timestamps[0] >= self._window:
                self._timestamps.popleft()

            if len(self._timestamps) >= self._max_requests:
                wait = self._window - (now - self._timestamps[0]) + 0.01
                self._sleep(wait)
                self._timestamps.popleft()

            self._timestamps.append(self._clock())


# Mercado Libre allows 1500 requests per minute.
def mercadolibre_rate_limiter() -> RateLimiter:
    return RateLimiter(1500, 60.0)
