"""Sliding-window rate limiter for the remote agent API.

The window is a list of attempt timestamps no older than one period. Before
each attempt the caller awaits `RateLimiter.wait_if_needed`; it sleeps until
the oldest timestamp leaves the window whenever the window is full, so no
more than ``max_requests`` attempts ever start within any rolling period.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional

from pydantic import BaseModel

from .cancel import CancelToken, guarded

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class RateLimitUsage(BaseModel):
    current_requests: int
    max_requests: int
    period_ms: int
    usage_percentage: float


class RateLimiter:
    def __init__(
        self,
        max_requests: int,
        period_ms: int,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._max_requests = max_requests
        self._period_s = period_ms / 1000.0
        self._period_ms = period_ms
        self._clock = clock
        self._sleep = sleep
        self._requests: List[float] = []
        self._lock = asyncio.Lock()
        self._logger = logging.getLogger(__name__)

    def _prune(self, now: float) -> None:
        self._requests = [t for t in self._requests if now - t < self._period_s]

    async def wait_if_needed(self, cancel: Optional[CancelToken] = None) -> float:
        """Block until one more attempt fits in the window, then record it.

        Returns:
            Total seconds spent waiting.
        """
        waited = 0.0
        async with self._lock:
            while True:
                now = self._clock()
                self._prune(now)
                if len(self._requests) < self._max_requests:
                    self._requests.append(now)
                    return waited
                sleep_s = self._period_s - (now - self._requests[0])
                self._logger.info("Rate limit reached, sleeping for %.0fms", sleep_s * 1000)
                await guarded(self._sleep(sleep_s), cancel)
                waited += sleep_s

    def current_usage(self) -> RateLimitUsage:
        now = self._clock()
        recent = [t for t in self._requests if now - t < self._period_s]
        return RateLimitUsage(
            current_requests=len(recent),
            max_requests=self._max_requests,
            period_ms=self._period_ms,
            usage_percentage=len(recent) / self._max_requests * 100,
        )
