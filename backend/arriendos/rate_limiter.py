import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, Deque, Dict

from backend.arriendos.settings import RATE_POLL_MS, RATE_WINDOW_MS, RATE_WINDOW_RECHECK_MS
from backend.py_models.source import RateLimitConfig

log = logging.getLogger("arriendos.rate_limiter")


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


async def _sleep_ms(ms: float) -> None:
    await asyncio.sleep(max(ms, 0) / 1000.0)


class RateLimiter:
    """
    Sliding-window + concurrency gate for ONE source.

    acquire() blocks until a request may be issued, then records it:
      1. poll every 100ms while active >= max_concurrent_requests
      2. drop recorded timestamps older than 60s
      3. while the window is full, wait 1s and drop again
      4. wait out what is left of delay_between_requests since the last request
      5. record now, mark one request active, release it after the delay

    Never raises; it only delays. `clock` (ms) and `sleep` (ms) are injectable
    so tests can run against a fake timeline.
    """

    def __init__(
        self,
        config: RateLimitConfig,
        source_id: str = "",
        clock: Callable[[], float] = _monotonic_ms,
        sleep: Callable[[float], Awaitable[None]] = _sleep_ms,
    ):
        self.config = config
        self.source_id = source_id
        self._clock = clock
        self._sleep = sleep
        self._timestamps: Deque[float] = deque()
        self._active = 0
        self._lock = asyncio.Lock()
        self._releases: set[asyncio.Task] = set()

    @property
    def active_requests(self) -> int:
        return self._active

    def _prune(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= RATE_WINDOW_MS:
            self._timestamps.popleft()

    async def acquire(self) -> None:
        # one acquirer at a time so the concurrency check and the increment can't interleave
        async with self._lock:
            while self._active >= self.config.max_concurrent_requests:
                await self._sleep(RATE_POLL_MS)

            self._prune(self._clock())
            while len(self._timestamps) >= self.config.requests_per_minute:
                log.debug("[%s] window full (%d/min), waiting", self.source_id, self.config.requests_per_minute)
                await self._sleep(RATE_WINDOW_RECHECK_MS)
                self._prune(self._clock())

            if self._timestamps:
                since_last = self._clock() - self._timestamps[-1]
                remaining = self.config.delay_between_requests - since_last
                if remaining > 0:
                    await self._sleep(remaining)

            self._timestamps.append(self._clock())
            self._active += 1
            task = asyncio.ensure_future(self._release_after(self.config.delay_between_requests))
            self._releases.add(task)
            task.add_done_callback(self._releases.discard)

    async def _release_after(self, delay_ms: float) -> None:
        try:
            await self._sleep(delay_ms)
        finally:
            self._active = max(0, self._active - 1)

    def recorded(self) -> list[float]:
        """Timestamps (ms) of every request still inside the window."""
        return list(self._timestamps)

    def stats(self) -> Dict[str, int | str]:
        self._prune(self._clock())
        return {
            "source": self.source_id,
            "requests_last_minute": len(self._timestamps),
            "active_requests": self._active,
            "requests_per_minute": self.config.requests_per_minute,
            "max_concurrent_requests": self.config.max_concurrent_requests,
            "delay_between_requests": self.config.delay_between_requests,
        }
