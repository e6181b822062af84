"""Per-credential request throttling for vendor APIs.

Each limiter enforces two rules before a request is sent:

* at most ``rate_limit_per_minute`` requests per rolling one-minute window;
  once the budget is spent the caller waits for the rest of the window
* a minimum gap between consecutive requests (``min_interval`` seconds)

Limiters are shared through ``RateLimiterRegistry`` keyed by vendor and
account, so concurrent runs against the same credential draw from the same
budget within one process.
"""

import asyncio
import time
from typing import Awaitable, Callable, Dict, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)


class RequestRateLimiter:
    """Fixed-window request counter with a minimum inter-request delay."""

    def __init__(
        self,
        rate_limit_per_minute: int = 60,
        min_interval: float = 0.5,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the limiter.

        Args:
            rate_limit_per_minute: Requests allowed per window
            min_interval: Minimum seconds between two requests
            window_seconds: Window length, one minute unless testing
            clock: Monotonic time source
            sleep: Coroutine used to wait
        """
        if rate_limit_per_minute < 1:
            raise ValueError("rate_limit_per_minute must be at least 1")
        self.rate_limit_per_minute = rate_limit_per_minute
        self.min_interval = min_interval
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep

        self.request_count = 0
        self.window_started_at = clock()
        self.last_request_at: Optional[float] = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait until a request may be sent, then record it."""
        async with self._lock:
            now = self._clock()

            if now - self.window_started_at >= self.window_seconds:
                self.request_count = 0
                self.window_started_at = now

            if self.request_count >= self.rate_limit_per_minute:
                wait_time = self.window_seconds - (now - self.window_started_at)
                logger.warning("rate_limit_reached", wait_seconds=round(wait_time, 3))
                if wait_time > 0:
                    await self._sleep(wait_time)
                now = self._clock()
                self.request_count = 0
                self.window_started_at = now

            if self.last_request_at is not None:
                since_last = now - self.last_request_at
                if since_last < self.min_interval:
                    await self._sleep(self.min_interval - since_last)
                    now = self._clock()

            self.request_count += 1
            self.last_request_at = now


class RateLimiterRegistry:
    """Hands out one ``RequestRateLimiter`` per (vendor, account) pair."""

    def __init__(self):
        self._limiters: Dict[Tuple[str, str], RequestRateLimiter] = {}

    def get(
        self,
        vendor_id: str,
        account_name: Optional[str],
        rate_limit_per_minute: int,
        min_interval: float,
    ) -> RequestRateLimiter:
        """Get or create the limiter for a credential.

        The first caller's limits win for the lifetime of the registry.
        """
        key = (vendor_id, account_name or "default")
        if key not in self._limiters:
            self._limiters[key] = RequestRateLimiter(
                rate_limit_per_minute=rate_limit_per_minute,
                min_interval=min_interval,
            )
            logger.debug(
                "rate_limiter_created",
                vendor_id=vendor_id,
                account_name=key[1],
                rate_limit_per_minute=rate_limit_per_minute,
                min_interval=min_interval,
            )
        return self._limiters[key]

    def reset(self) -> None:
        self._limiters.clear()
