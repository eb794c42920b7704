"""Sliding-window admission control."""

import asyncio
import logging
import time
from collections import deque
from typing import Callable, Deque, Optional

from request_middleware.core.context import HttpContext
from request_middleware.engine.types import NextFunction
from request_middleware.settings import Settings

logger = logging.getLogger(__name__)


class ThrottleMiddleware:
    """
    Admits at most `limit` requests per `interval` seconds.

    Requests over the limit wait, in arrival order, until the oldest admission
    leaves the window. Waiting happens before `next`.

    Attributes:
        limit (int): Admissions allowed within one window.
        interval (float): Window length in seconds.
        name (str): Name used in log lines.
    """

    def __init__(
        self,
        limit: int = 5,
        interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        name: Optional[str] = None,
    ):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.limit = limit
        self.interval = interval
        self._clock = clock
        self._admissions: Deque[float] = deque()
        # Held by the request at the head of the line while it waits for a free slot.
        self._lock = asyncio.Lock()
        self.name = name or self.__class__.__name__

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ThrottleMiddleware":
        settings = settings or Settings()
        return cls(limit=settings.get_throttle_limit(), interval=settings.get_throttle_interval())

    async def __call__(self, ctx: HttpContext, next: NextFunction) -> None:
        await self.acquire(str(ctx.request_id))
        await next()

    async def acquire(self, request_id: str = "-") -> None:
        async with self._lock:
            while True:
                now = self._clock()
                self._evict(now)
                if len(self._admissions) < self.limit:
                    self._admissions.append(now)
                    return
                wait = self._admissions[0] + self.interval - now
                logger.debug(f"[{request_id}] Throttled for {wait:.3f}s ({self.name})")
                await asyncio.sleep(wait)

    def _evict(self, now: float) -> None:
        while self._admissions and now - self._admissions[0] >= self.interval:
            self._admissions.popleft()

    @property
    def in_window(self) -> int:
        self._evict(self._clock())
        return len(self._admissions)


def create_throttle_middleware(limit: int = 5, interval: float = 1.0) -> ThrottleMiddleware:
    return ThrottleMiddleware(limit=limit, interval=interval)
