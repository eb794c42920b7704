"""Onion-model middleware engine.

Each middleware's code before `await next()` runs in registration order; its
code after `next()` runs in reverse order as control unwinds. The terminal
handler runs once, innermost, if every middleware calls `next`.
"""

import logging
from typing import Generic, Iterable, List, Optional, Sequence, Tuple

from request_middleware.engine.exceptions import NextCalledMultipleTimesError
from request_middleware.engine.types import C, FinalHandler, Middleware, NextFunction

logger = logging.getLogger(__name__)


def middleware_name(middleware: object) -> str:
    return getattr(middleware, "name", None) or getattr(middleware, "__name__", None) or type(middleware).__name__


async def _noop() -> None:
    return None


class MiddlewareEngine(Generic[C]):
    """Runs an ordered list of middleware around a terminal handler.

    Attributes:
        name (str): Name used in log lines.
    """

    def __init__(self, middlewares: Optional[Iterable[Middleware[C]]] = None, name: Optional[str] = None):
        self._middlewares: List[Middleware[C]] = list(middlewares or [])
        self.name = name or self.__class__.__name__

    def use(self, middleware: Middleware[C]) -> None:
        """Register a middleware after the ones already registered."""
        self._middlewares.append(middleware)
        logger.debug(f"Registered middleware {middleware_name(middleware)} in {self.name}")

    def get_middlewares(self) -> Tuple[Middleware[C], ...]:
        """Return a snapshot of the registered middleware."""
        return tuple(self._middlewares)

    async def dispatch(
        self,
        ctx: C,
        final_handler: Optional[FinalHandler] = None,
        extra_middlewares: Optional[Sequence[Middleware[C]]] = None,
    ) -> None:
        """
        Execute the middleware chain for one context.

        Args:
            ctx: The context owned by this dispatch.
            final_handler: The innermost operation, e.g. the transport call.
            extra_middlewares: Middleware for this dispatch only, run after the registered ones.

        Raises:
            Exception: Propagates anything raised by a middleware or the final handler, unchanged.
            NextCalledMultipleTimesError: If a middleware calls its `next` more than once.
        """
        handler = final_handler or _noop

        async def terminal(_ctx: C, _next: NextFunction) -> None:
            await handler()

        chain: List[Middleware[C]] = [*self._middlewares, *(extra_middlewares or []), terminal]
        logger.debug(f"Dispatching {len(chain) - 1} middleware in {self.name}")

        continuation: NextFunction = _noop
        for middleware in reversed(chain):
            continuation = self._bind(ctx, middleware, continuation)
        await continuation()

    @staticmethod
    def _bind(ctx: C, middleware: Middleware[C], downstream: NextFunction) -> NextFunction:
        called = False

        async def next_() -> None:
            nonlocal called
            if called:
                raise NextCalledMultipleTimesError(
                    f"next() called multiple times by middleware {middleware_name(middleware)}",
                    middleware_name=middleware_name(middleware),
                )
            called = True
            await downstream()

        async def run() -> None:
            await middleware(ctx, next_)

        return run

    def __repr__(self) -> str:
        names = ", ".join(middleware_name(m) for m in self._middlewares)
        return f"<{self.name}(middlewares=[{names}])>"


def create_middleware_engine(middlewares: Optional[Iterable[Middleware[C]]] = None) -> MiddlewareEngine[C]:
    return MiddlewareEngine(middlewares)
