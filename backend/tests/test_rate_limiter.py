"""Tests for per-credential request throttling."""

import pytest

from okazje.vendors.utils.rate_limiter import RateLimiterRegistry, RequestRateLimiter


class FakeClock:
    """Monotonic clock that only moves when someone sleeps or ``advance`` is called."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _limiter(clock: FakeClock, **kwargs) -> RequestRateLimiter:
    return RequestRateLimiter(clock=clock, sleep=clock.sleep, **kwargs)


class TestRequestRateLimiter:
    async def test_min_interval_between_requests(self):
        clock = FakeClock()
        limiter = _limiter(clock, rate_limit_per_minute=60, min_interval=0.5)

        await limiter.acquire()
        await limiter.acquire()

        assert clock.sleeps == [0.5]
        assert limiter.request_count == 2

    async def test_no_wait_when_interval_already_elapsed(self):
        clock = FakeClock()
        limiter = _limiter(clock, rate_limit_per_minute=60, min_interval=0.5)

        await limiter.acquire()
        clock.advance(2)
        await limiter.acquire()

        assert clock.sleeps == []

    async def test_waits_for_window_when_budget_spent(self):
        clock = FakeClock()
        limiter = _limiter(clock, rate_limit_per_minute=2, min_interval=0)

        await limiter.acquire()
        clock.advance(10)
        await limiter.acquire()
        await limiter.acquire()

        assert clock.sleeps == [pytest.approx(50)]
        assert limiter.request_count == 1
        assert limiter.window_started_at == pytest.approx(60)

    async def test_window_resets_after_a_minute(self):
        clock = FakeClock()
        limiter = _limiter(clock, rate_limit_per_minute=1, min_interval=0)

        await limiter.acquire()
        clock.advance(61)
        await limiter.acquire()

        assert clock.sleeps == []

    def test_rejects_zero_budget(self):
        with pytest.raises(ValueError):
            RequestRateLimiter(rate_limit_per_minute=0)


class TestRateLimiterRegistry:
    def test_same_credential_shares_limiter(self):
        registry = RateLimiterRegistry()

        first = registry.get("allegro", None, rate_limit_per_minute=60, min_interval=0.5)
        second = registry.get("allegro", "default", rate_limit_per_minute=10, min_interval=1)

        assert first is second
        assert second.rate_limit_per_minute == 60

    def test_accounts_and_vendors_are_isolated(self):
        registry = RateLimiterRegistry()

        shop_a = registry.get("allegro", "shop-a", rate_limit_per_minute=60, min_interval=0.5)
        shop_b = registry.get("allegro", "shop-b", rate_limit_per_minute=60, min_interval=0.5)
        ebay = registry.get("ebay", "shop-a", rate_limit_per_minute=60, min_interval=0.5)

        assert len({id(shop_a), id(shop_b), id(ebay)}) == 3

    def test_reset_drops_limiters(self):
        registry = RateLimiterRegistry()
        first = registry.get("amazon", None, rate_limit_per_minute=60, min_interval=1)

        registry.reset()

        assert registry.get("amazon", None, rate_limit_per_minute=60, min_interval=1) is not first
