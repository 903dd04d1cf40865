"""Token bucket rate limiting for outbound API calls."""
import logging
import threading
import time
from typing import Callable, Optional

from processor.errors import RateLimiterError

logger = logging.getLogger(__name__)


class TokenBucketLimiter:
    """
    Token bucket allowing `rate` requests per second with bursts of `burst`.

    Usage:
        limiter = TokenBucketLimiter(rate=4, burst=1)

        for venue in venues:
            query(venue)
            limiter.wait(cancelled)
    """

    def __init__(
        self,
        rate: float,
        burst: int = 1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize the limiter with a full bucket.

        Args:
            rate: Tokens added per second
            burst: Bucket capacity
            clock: Monotonic clock, injectable for tests
            sleep: Sleep function used when no cancellation event is given
        """
        if rate <= 0:
            raise ValueError("rate must be positive")
        if burst < 1:
            raise ValueError("burst must be at least 1")

        self.rate = rate
        self.burst = burst
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(burst)
        self._updated = clock()
        self._lock = threading.Lock()

    def _reserve(self) -> float:
        """Take a token, returning how long the caller must wait before using it."""
        with self._lock:
            now = self._clock()
            self._tokens = min(self.burst, self._tokens + (now - self._updated) * self.rate)
            self._updated = now
            self._tokens -= 1
            if self._tokens >= 0:
                return 0.0
            return -self._tokens / self.rate

    def wait(self, cancelled: Optional[threading.Event] = None) -> None:
        """
        Block until a token is available.

        Args:
            cancelled: Optional cancellation scope; waiting stops when it is set

        Raises:
            RateLimiterError: If the scope is (or becomes) set while waiting
        """
        if cancelled is not None and cancelled.is_set():
            raise RateLimiterError("rate limiter wait cancelled")

        delay = self._reserve()
        if delay <= 0:
            return

        logger.debug(f"Rate limited, waiting {delay:.3f}s")
        if cancelled is None:
            self._sleep(delay)
        elif cancelled.wait(delay):
            raise RateLimiterError("rate limiter wait cancelled")


class NoopLimiter:
    """Limiter that never waits."""

    def wait(self, cancelled: Optional[threading.Event] = None) -> None:
        return None
