"""
Token Bucket Rate Limiter
=========================
Shared limiter for outbound submissions: sustained rate with a small burst.
"""

import asyncio
import threading
import time
from typing import Awaitable, Callable

import structlog

from .models import RateLimitInfo

logger = structlog.get_logger(__name__)


class TokenBucketLimiter:
    """
    In-process token bucket.

    ``acquire()`` reserves a token immediately (the balance may go negative)
    and then sleeps for the time the reservation needs, so concurrent callers
    are spaced ``1 / rate`` seconds apart in arrival order.
    """

    def __init__(
        self,
        rate: float = 10.0,
        burst: int = 1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            rate: Tokens added per second
            burst: Bucket capacity
            clock: Monotonic time source
            sleep: Coroutine used to wait for a reservation
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

    def _advance(self, now: float) -> None:
        elapsed = max(0.0, now - self._updated)
        self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
        self._updated = now

    def reserve(self) -> float:
        """
        Take a token and return how long the caller must wait before using it.
        """
        with self._lock:
            self._advance(self._clock())
            self._tokens -= 1.0
            if self._tokens >= 0:
                return 0.0
            return -self._tokens / self.rate

    async def acquire(self) -> float:
        """
        Wait until a token is available.

        Returns:
            Seconds spent waiting
        """
        delay = self.reserve()
        if delay > 0:
            logger.debug("Submission throttled", wait_seconds=round(delay, 4))
            await self._sleep(delay)
        return delay

    def state(self) -> RateLimitInfo:
        """
        Current bucket level, without taking a token.

        ``allowed`` tells whether an acquire now would go through unthrottled.
        """
        with self._lock:
            self._advance(self._clock())
            tokens = self._tokens
        return RateLimitInfo(
            allowed=tokens >= 1.0,
            remaining=max(tokens, 0.0),
            limit=self.burst,
            rate=self.rate,
            retry_after=max(0.0, (1.0 - tokens) / self.rate),
        )
