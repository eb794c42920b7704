"""Middleware logging the timing and outcome of each request."""

import logging
import time
from typing import Optional

from request_middleware.core.context import HttpContext
from request_middleware.core.logging import log_middleware_execution, log_request_state
from request_middleware.engine.types import NextFunction

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware:
    """Logs essential details about each request and its outcome.

    Stores `request_id` and `started_at` in the context state so later
    middleware can correlate their own log lines.
    """

    def __init__(self, name: Optional[str] = None):
        self.name = name or self.__class__.__name__

    async def __call__(self, ctx: HttpContext, next: NextFunction) -> None:
        request_id = str(ctx.request_id)
        started_at = time.perf_counter()
        ctx.state["request_id"] = request_id
        ctx.state["started_at"] = started_at

        log_request_state(
            request_id,
            "before",
            {"method": ctx.request.method.value, "url": ctx.request.url},
        )
        try:
            await next()
        except Exception as e:
            log_middleware_execution(
                request_id,
                self.name,
                "error",
                duration=time.perf_counter() - started_at,
                error=str(e),
                details={"method": ctx.request.method.value, "url": ctx.request.url},
            )
            raise

        status = ctx.response.status if ctx.response is not None else None
        log_middleware_execution(
            request_id,
            self.name,
            "completed",
            duration=time.perf_counter() - started_at,
            details={"method": ctx.request.method.value, "url": ctx.request.url, "status": status},
        )
        log_request_state(request_id, "after", {"status": status})
