"""
Provides an adaptive rate limiter that backs off when a store answers with 429.
"""

import asyncio
import logging
import time

log = logging.getLogger(__name__)


class AdaptiveRateLimiter:
    """
    Spaces out API calls and halves the call rate every time the store
    reports "Too Many Requests". The rate slowly recovers once the store
    stops complaining.
    """

    def __init__(
        self, initial_calls_per_second: float = 6.0, max_calls_per_second: float = 10.0
    ):
        self._rate = initial_calls_per_second
        self._max_rate = max_calls_per_second
        self._last_call_time = 0.0
        self._last_429_time = 0.0
        self._paused_until = 0.0
        self._lock = asyncio.Lock()

    async def on_429(self, retry_after: float | None = None) -> None:
        """
        Called when a 429 response is received. Halves the current request rate
        and honours the store's Retry-After hint.
        """
        async with self._lock:
            self._rate = max(1.0, self._rate * 0.5)
            now = time.monotonic()
            self._last_429_time = now
            if retry_after:
                self._paused_until = max(self._paused_until, now + retry_after)
            log.warning(
                f"[yellow]Rate limit hit. New rate: {self._rate:.1f} calls/s[/yellow]"
            )

    async def acquire(self) -> None:
        """
        Waits if necessary to respect the current rate limit before allowing a call.
        """
        async with self._lock:
            now = time.monotonic()
            if now - self._last_429_time > 300:
                self._rate = min(self._max_rate, self._rate * 1.005)

            wait = max(
                self._paused_until - now,
                (1.0 / self._rate) - (now - self._last_call_time),
            )
            if wait > 0:
                await asyncio.sleep(wait)

            self._last_call_time = time.monotonic()
