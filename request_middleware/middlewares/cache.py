"""
In-memory response cache for GET requests.

A hit short-circuits the chain: the rest of the middleware and the transport
do not run. Only successful, non-streaming responses are stored.
"""

import json
import logging
import time
from typing import Callable, Dict, Optional, Tuple

from request_middleware.core.context import HttpContext
from request_middleware.core.request import HttpMethod, RequestConfig
from request_middleware.core.response import ResponseData
from request_middleware.engine.types import NextFunction
from request_middleware.streaming.session import EventStreamSession

logger = logging.getLogger(__name__)


def cache_key(config: RequestConfig) -> str:
    """URL followed by the JSON-serialized params."""
    return config.url + json.dumps(config.params or {}, sort_keys=True, default=str)


def is_cacheable(response: Optional[ResponseData]) -> bool:
    """Successful responses only, and never a live event stream session."""
    return response is not None and response.ok and not isinstance(response.data, EventStreamSession)


class ResponseCache:
    """
    Middleware caching GET responses by URL and params.

    Attributes:
        ttl (Optional[float]): Seconds an entry stays fresh. None keeps entries forever.
        name (str): Name used in log lines.
    """

    def __init__(
        self,
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        name: Optional[str] = None,
    ):
        if ttl is not None and ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[float, ResponseData]] = {}
        self.name = name or self.__class__.__name__

    async def __call__(self, ctx: HttpContext, next: NextFunction) -> None:
        if ctx.request.method != HttpMethod.GET:
            await next()
            return

        key = cache_key(ctx.request)
        cached = self.get(key)
        if cached is not None:
            logger.debug(f"[{ctx.request_id}] Cache hit for {key} ({self.name})")
            ctx.response = cached.model_copy(update={"config": ctx.request})
            ctx.state["cache_hit"] = True
            return

        await next()

        if is_cacheable(ctx.response):
            self._entries[key] = (self._clock(), ctx.response)
            logger.debug(f"[{ctx.request_id}] Cached response for {key} ({self.name})")

    def get(self, key: str) -> Optional[ResponseData]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, response = entry
        if self.ttl is not None and self._clock() - stored_at >= self.ttl:
            del self._entries[key]
            return None
        return response

    def invalidate(self, key: Optional[str] = None) -> None:
        """Drop one entry, or every entry when no key is given."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


def create_cache_middleware(ttl: Optional[float] = None) -> ResponseCache:
    return ResponseCache(ttl=ttl)
