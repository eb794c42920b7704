"""Event stream session: a pull-style view over a push-style event source.

Three cancellation sources converge on one internal AbortController:
`session.cancel()`, the caller's abort signal and the session timeout. Only the
first one fires; its reason decides how the stream terminates:

- CANCELLED (explicit `cancel()`): the stream closes cleanly.
- ABORTED (caller signal): the stream fails with AbortError.
- TIMEOUT: the stream fails with RequestTimeoutError.
"""

import asyncio
import logging
from typing import AsyncIterator, Optional

from pydantic import BaseModel, Field

from request_middleware.core.abort import AbortController, AbortReason, AbortSignal
from request_middleware.core.errors import AbortError, RequestError, RequestTimeoutError
from request_middleware.core.request import RequestConfig
from request_middleware.streaming.queue import AsyncMessageQueue, QueueState

logger = logging.getLogger(__name__)


class EventStreamMessage(BaseModel):
    """One discrete event received from an event stream."""

    data: str = Field()
    type: Optional[str] = Field(default=None)
    id: Optional[str] = Field(default=None)


class EventStreamSession:
    """A cancellable, ordered, lazily consumed stream of EventStreamMessage.

    Attributes:
        config: The request config that opened the stream.
        queue: The message queue fed by the event source.
    """

    def __init__(self, config: Optional[RequestConfig] = None, queue: Optional[AsyncMessageQueue] = None):
        self.config = config
        self.queue: AsyncMessageQueue[EventStreamMessage] = queue or AsyncMessageQueue(name="EventStreamSession")
        self._controller = AbortController()
        self._external_signal: Optional[AbortSignal] = None
        self._timeout_handle: Optional[asyncio.TimerHandle] = None
        self._finished = False
        self._done: Optional[asyncio.Future] = None

    # --- Consumer API ---

    @property
    def stream(self) -> AsyncIterator[EventStreamMessage]:
        """A fresh cursor over the unread messages."""
        return aiter(self.queue)

    def __aiter__(self) -> AsyncIterator[EventStreamMessage]:
        return aiter(self.queue)

    def cancel(self) -> None:
        """Tear down the stream. Idempotent, and a no-op once the session finished."""
        if self._finished:
            return
        self._controller.abort(AbortReason.CANCELLED)

    @property
    def done(self) -> asyncio.Future:
        """Future resolved once the event source terminated and the session released its resources.

        Its result is the terminal error, or None when the stream closed cleanly.
        """
        if self._done is None:
            self._done = asyncio.get_running_loop().create_future()
            if self._finished:
                self._done.set_result(self.queue.failure)
        return self._done

    @property
    def error(self) -> Optional[BaseException]:
        return self.queue.failure

    @property
    def state(self) -> QueueState:
        return self.queue.state

    @property
    def finished(self) -> bool:
        return self._finished

    # --- Cancellation wiring ---

    @property
    def signal(self) -> AbortSignal:
        """The internal latch the event source must watch."""
        return self._controller.signal

    @property
    def abort_reason(self) -> Optional[AbortReason]:
        return self._controller.signal.reason

    def link(self, external_signal: Optional[AbortSignal] = None, timeout: Optional[float] = None) -> None:
        """Attach the caller's abort signal and a timeout to the internal latch."""
        if external_signal is not None:
            self._external_signal = external_signal
            external_signal.add_listener(self._on_external_abort)
        if timeout is not None and timeout > 0 and not self.signal.aborted:
            loop = asyncio.get_running_loop()
            self._timeout_handle = loop.call_later(timeout, self._controller.abort, AbortReason.TIMEOUT)

    def _on_external_abort(self, _reason: AbortReason) -> None:
        self._controller.abort(AbortReason.ABORTED)

    def abort_error(self) -> Optional[RequestError]:
        """The error matching the recorded abort reason; None for an explicit cancel."""
        reason = self.abort_reason
        if reason is AbortReason.TIMEOUT:
            timeout = self.config.timeout if self.config and self.config.timeout else 0
            return RequestTimeoutError(f"Event stream timed out after {timeout}s", timeout, self.config)
        if reason is AbortReason.ABORTED:
            return AbortError("Event stream aborted by user", self.config)
        return None

    # --- Producer lifecycle ---

    def finish(self) -> None:
        """Release timers and listeners, close the queue if still open, and resolve `done`."""
        if self._finished:
            return
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None
        if self._external_signal is not None:
            self._external_signal.remove_listener(self._on_external_abort)
            self._external_signal = None
        self.queue.close()
        self._finished = True
        logger.debug(f"Event stream session finished in state '{self.queue.state.value}'")
        if self._done is not None and not self._done.done():
            self._done.set_result(self.queue.failure)

    def __repr__(self) -> str:
        url = self.config.url if self.config else None
        return f"<EventStreamSession url={url!r} state={self.queue.state.value}>"
