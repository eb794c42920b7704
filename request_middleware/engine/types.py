"""Type definitions for the middleware engine.

The engine is independent of HTTP: middleware is generic over its context type.
The HTTP-specific Transport protocol lives here because the client, the retry
decorator and every transport agree on it.
"""

from typing import Awaitable, Callable, Protocol, TypeVar, runtime_checkable

from request_middleware.core.request import RequestConfig
from request_middleware.core.response import ResponseData

C = TypeVar("C")
C_contra = TypeVar("C_contra", contravariant=True)

NextFunction = Callable[[], Awaitable[None]]
FinalHandler = Callable[[], Awaitable[None]]


class Middleware(Protocol[C_contra]):
    """An async callable receiving the context and a continuation.

    `next` may be awaited at most once. Not awaiting it short-circuits the rest
    of the chain, including the terminal handler.

    Example:
        async def log_middleware(ctx: HttpContext, next: NextFunction) -> None:
            logger.info(f"-> {ctx.request.url}")
            await next()
            logger.info(f"<- {ctx.response.status if ctx.response else None}")
    """

    async def __call__(self, ctx: C_contra, next: NextFunction) -> None: ...


@runtime_checkable
class Transport(Protocol):
    """Executes one request. Raises RequestError (or a raw failure the caller normalizes)."""

    async def request(self, config: RequestConfig) -> ResponseData: ...
