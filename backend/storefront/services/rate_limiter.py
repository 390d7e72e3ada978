"""Per-owner limits on order creation."""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from store_common.utils import get_logger
from storefront.errors import StoreErrors

logger = get_logger()


class RateLimiter(ABC):
    """A keyed counter store. ``hit`` records one request and says whether it is allowed."""

    @abstractmethod
    async def hit(self, key: str) -> bool:
        pass

    async def enforce(self, key: str) -> None:
        if not await self.hit(key):
            logger.warning("Rate limit exceeded", key=key)
            raise StoreErrors.Auth.RATE_LIMITED.create()


@dataclass
class _Window:
    started_at: float
    count: int


class InMemoryRateLimiter(RateLimiter):
    """Fixed windows held in process memory; each instance of the service counts on its own."""

    def __init__(self, max_requests: int = 5, window_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = asyncio.Lock()

    async def hit(self, key: str) -> bool:
        async with self._lock:
            now = self._clock()
            self._evict_expired(now)
            window = self._windows.get(key)
            if window is None:
                self._windows[key] = _Window(started_at=now, count=1)
                return True
            if window.count >= self.max_requests:
                return False
            window.count += 1
            return True

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if now - window.started_at >= self.window_seconds]
        for key in expired:
            del self._windows[key]
