"""A smoothed request rate limiter."""

import threading
import time
from typing import Callable

__all__ = ["RateLimiter"]


class RateLimiter:
    """Allows ``rate`` calls per ``per`` seconds, refilling continuously."""

    def __init__(
        self, rate: int, per: float = 1.0, clock: Callable[[], float] = time.monotonic
    ) -> None:
        if rate < 0:
            raise ValueError("rate must not be negative")
        if per <= 0:
            raise ValueError("per must be positive")
        self.rate = rate
        self.per = per
        self._clock = clock
        self._lock = threading.Lock()
        self._allowance = float(rate)
        self._last = clock()

    def limit(self) -> bool:
        """Return True if this call exceeds the rate and must be rejected."""
        with self._lock:
            now = self._clock()
            elapsed = max(0.0, now - self._last)
            self._last = now
            self._allowance = min(
                float(self.rate), self._allowance + elapsed * self.rate / self.per
            )
            if self._allowance < 1.0:
                return True
            self._allowance -= 1.0
            return False