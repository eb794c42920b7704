"""Push-to-pull message queue backing event stream sessions.

The queue is a small state machine:

    OPEN --close()--> CLOSED
    OPEN --fail(e)--> FAILED

The first terminal transition wins; later `close`/`fail` calls and pushes are
ignored. Unread items are kept in FIFO order. A pull on an empty OPEN queue
parks in a single pending-pull slot until the next push, close or failure.
"""

import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Any, AsyncIterator, Deque, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_COMPLETE: Any = object()


class QueueState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    FAILED = "failed"


class ConcurrentPullError(RuntimeError):
    """Raised when a second pull is attempted while another one is still pending."""


class AsyncMessageQueue(Generic[T]):
    def __init__(self, name: str = "AsyncMessageQueue"):
        self.name = name
        self._state = QueueState.OPEN
        self._values: Deque[T] = deque()
        self._failure: Optional[BaseException] = None
        self._waiter: Optional[asyncio.Future] = None
        self._done: Optional[asyncio.Future] = None

    @property
    def state(self) -> QueueState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state is not QueueState.OPEN

    @property
    def failure(self) -> Optional[BaseException]:
        return self._failure

    @property
    def pending(self) -> int:
        """Number of buffered, unread items."""
        return len(self._values)

    @property
    def done(self) -> asyncio.Future:
        """Future resolved once the queue terminates.

        Its result is the failure for a FAILED queue and None for a CLOSED one;
        it never raises, so nobody has to retrieve it.
        """
        if self._done is None:
            self._done = asyncio.get_running_loop().create_future()
            if self.is_terminal:
                self._done.set_result(self._failure)
        return self._done

    # --- Push side ---

    def push(self, value: T) -> None:
        if self.is_terminal:
            logger.debug(f"{self.name}: dropping item pushed after {self._state.value}")
            return
        waiter = self._take_waiter()
        if waiter is not None:
            waiter.set_result(value)
            return
        self._values.append(value)

    def close(self) -> None:
        if self.is_terminal:
            return
        self._state = QueueState.CLOSED
        logger.debug(f"{self.name}: closed with {len(self._values)} unread item(s)")
        waiter = self._take_waiter()
        if waiter is not None:
            waiter.set_result(_COMPLETE)
        self._settle_done()

    def fail(self, error: BaseException) -> None:
        if self.is_terminal:
            return
        self._state = QueueState.FAILED
        self._failure = error
        logger.debug(f"{self.name}: failed with {error!r}")
        waiter = self._take_waiter()
        if waiter is not None:
            waiter.set_exception(error)
        self._settle_done()

    # --- Pull side ---

    async def pull(self) -> T:
        """Return the oldest unread item.

        Items pushed before a terminal transition are still returned first.

        Raises:
            StopAsyncIteration: The queue closed and every item has been read.
            BaseException: The stored failure, on every pull once the buffer is drained.
            ConcurrentPullError: Another pull is already waiting.
        """
        if self._values:
            return self._values.popleft()
        if self._failure is not None:
            raise self._failure
        if self._state is QueueState.CLOSED:
            raise StopAsyncIteration
        if self._waiter is not None and not self._waiter.done():
            raise ConcurrentPullError(f"{self.name}: a pull is already pending")

        waiter = asyncio.get_running_loop().create_future()
        self._waiter = waiter
        try:
            value = await waiter
        finally:
            if self._waiter is waiter:
                self._waiter = None
        if value is _COMPLETE:
            raise StopAsyncIteration
        return value

    def __aiter__(self) -> AsyncIterator[T]:
        """Return a fresh cursor. All cursors drain the same buffer."""
        return _QueueCursor(self)

    def _take_waiter(self) -> Optional[asyncio.Future]:
        waiter, self._waiter = self._waiter, None
        if waiter is None or waiter.done():
            # The consumer went away (cancelled pull).
            return None
        return waiter

    def _settle_done(self) -> None:
        if self._done is not None and not self._done.done():
            self._done.set_result(self._failure)

    def __repr__(self) -> str:
        return f"<{self.name} {self._state.value} pending={len(self._values)}>"


class _QueueCursor(AsyncIterator[T]):
    def __init__(self, queue: AsyncMessageQueue[T]):
        self._queue = queue

    def __aiter__(self) -> "_QueueCursor[T]":
        return self

    async def __anext__(self) -> T:
        return await self._queue.pull()
