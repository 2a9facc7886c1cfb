"""
Tests for RateLimiter on a fake timeline.

The fake sleep advances the fake clock, so waits cost no real time.
"""

import asyncio

from backend.arriendos.rate_limiter import RateLimiter
from backend.py_models.source import RateLimitConfig


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    async def sleep(self, ms: float) -> None:
        self.now += max(ms, 0)
        await asyncio.sleep(0)


def _limiter(rpm, delay, concurrent, clock):
    cfg = RateLimitConfig(requests_per_minute=rpm, delay_between_requests=delay, max_concurrent_requests=concurrent)
    return RateLimiter(cfg, source_id="test", clock=clock, sleep=clock.sleep)


def _max_in_any_window(times, window=60_000):
    return max(sum(1 for u in times if t <= u < t + window) for t in times)


class TestSlidingWindow:

    async def test_window_never_exceeds_limit(self):
        clock = FakeClock()
        limiter = _limiter(3, 0, 10, clock)
        issued = []
        for _ in range(7):
            await limiter.acquire()
            issued.append(clock.now)

        assert len(issued) == 7
        assert _max_in_any_window(issued) <= 3
        # the 4th request had to wait for the first ones to leave the window
        assert issued[3] >= 60_000

    async def test_under_the_limit_does_not_wait(self):
        clock = FakeClock()
        limiter = _limiter(10, 0, 10, clock)
        for _ in range(5):
            await limiter.acquire()
        assert clock.now == 0
        assert len(limiter.recorded()) == 5


class TestPacing:

    async def test_delay_between_requests(self):
        clock = FakeClock()
        limiter = _limiter(100, 2000, 5, clock)
        issued = []
        for _ in range(3):
            await limiter.acquire()
            issued.append(clock.now)
        gaps = [b - a for a, b in zip(issued, issued[1:])]
        assert all(g >= 2000 for g in gaps)

    async def test_concurrency_cap(self):
        clock = FakeClock()
        limiter = _limiter(100, 2000, 1, clock)
        for _ in range(3):
            await limiter.acquire()
            assert limiter.active_requests <= 1

    async def test_concurrency_cap_under_concurrent_callers(self):
        clock = FakeClock()
        limiter = _limiter(100, 1000, 2, clock)
        peak = 0

        async def worker():
            nonlocal peak
            await limiter.acquire()
            peak = max(peak, limiter.active_requests)

        await asyncio.gather(*(worker() for _ in range(6)))
        assert len(limiter.recorded()) == 6
        assert 1 <= peak <= 2


class TestStats:

    async def test_stats_report_configuration_and_usage(self):
        clock = FakeClock()
        limiter = _limiter(20, 0, 2, clock)
        await limiter.acquire()
        stats = limiter.stats()
        assert stats["source"] == "test"
        assert stats["requests_last_minute"] == 1
        assert stats["requests_per_minute"] == 20
        assert stats["max_concurrent_requests"] == 2
