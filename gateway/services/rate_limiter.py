"""Sliding window rate limiter for inbound requests.

Each client key gets its own window of request timestamps. Unlike an
outbound limiter this never waits: a request over the limit is refused
and the caller is told how long until a slot frees up.
"""

import asyncio
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

DEFAULT_MAX_REQUESTS = 30
DEFAULT_TIME_WINDOW_SECONDS = 60.0


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_after: float  # seconds until the oldest request leaves the window


class RateLimiter:
    """Per-client sliding window rate limiter."""

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        time_window: float = DEFAULT_TIME_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the rate limiter.

        Args:
            max_requests: Maximum number of requests allowed in the time window.
            time_window: The time window in seconds.
            clock: Monotonic time source, overridable for tests.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if time_window <= 0:
            raise ValueError("time_window must be positive")

        self.max_requests = max_requests
        self.time_window = time_window
        self._clock = clock
        self._windows: dict[str, deque[float]] = {}
        self._last_prune = clock()
        self._lock = asyncio.Lock()
        logger.info(
            f"RateLimiter initialized: {max_requests} requests / {time_window} seconds"
        )

    def _cleanup(self, window: deque[float], now: float) -> None:
        while window and now - window[0] >= self.time_window:
            window.popleft()

    async def check(self, client_id: str) -> RateLimitDecision:
        """Record a request for ``client_id`` if it fits in the window."""
        async with self._lock:
            now = self._clock()
            if now - self._last_prune >= self.time_window:
                self._prune_idle(now)
            window = self._windows.setdefault(client_id, deque())
            self._cleanup(window, now)

            if len(window) < self.max_requests:
                window.append(now)
                return RateLimitDecision(
                    allowed=True,
                    limit=self.max_requests,
                    remaining=self.max_requests - len(window),
                    reset_after=max(0.0, window[0] + self.time_window - now),
                )

            reset_after = max(0.0, window[0] + self.time_window - now)
            logger.debug(
                f"Rate limit reached for {client_id}, next slot in {reset_after:.2f}s"
            )
            return RateLimitDecision(
                allowed=False,
                limit=self.max_requests,
                remaining=0,
                reset_after=reset_after,
            )

    def _prune_idle(self, now: float) -> int:
        # caller holds the lock
        empty = []
        for client_id, window in self._windows.items():
            self._cleanup(window, now)
            if not window:
                empty.append(client_id)
        for client_id in empty:
            del self._windows[client_id]
        self._last_prune = now
        if empty:
            logger.debug(f"RateLimiter dropped {len(empty)} idle client windows")
        return len(empty)

    async def prune(self) -> int:
        """Drop windows with no requests left in them. Returns count removed."""
        async with self._lock:
            return self._prune_idle(self._clock())
