"""Async sliding-window rate limiter."""

import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class RateLimiter:
    """Allow at most ``max_requests`` acquisitions per ``period_seconds``.

    Usage::

        limiter = RateLimiter(max_requests=25, period_seconds=100)

        async with limiter:
            await make_request()
    """

    def __init__(
        self,
        max_requests: int,
        period_seconds: float,
        name: str = "default",
    ):
        self._max_requests = max_requests
        self._period = period_seconds
        self._name = name
        self._window: list[float] = []
        self._lock = asyncio.Lock()

    def _clean_window(self, now: float) -> None:
        self._window = [t for t in self._window if now - t < self._period]

    def _wait_time(self) -> float:
        """Seconds until the next request is allowed (0 when free)."""
        now = time.monotonic()
        self._clean_window(now)
        if len(self._window) >= self._max_requests:
            return max(0.0, self._period - (now - self._window[0]))
        return 0.0

    async def acquire(self) -> None:
        async with self._lock:
            while True:
                wait = self._wait_time()
                if wait <= 0:
                    break
                logger.debug("RateLimiter(%s) sleeping %.2fs", self._name, wait)
                await asyncio.sleep(wait)
            self._window.append(time.monotonic())

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, *args):
        pass

    @property
    def requests_in_window(self) -> int:
        self._clean_window(time.monotonic())
        return len(self._window)
