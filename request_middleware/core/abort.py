"""Single-fire cancellation latch shared by transports and streaming sessions."""

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class AbortReason(str, Enum):
    """Why an abort latch fired. Only the first reason is ever recorded."""

    CANCELLED = "cancelled"
    ABORTED = "aborted"
    TIMEOUT = "timeout"


AbortListener = Callable[[AbortReason], None]


class AbortSignal:
    """Read side of an abort latch.

    Listeners are invoked exactly once, in registration order, when the owning
    controller fires. A listener registered after the latch fired is invoked
    immediately. Listener errors are logged and never interrupt the others.

    Typical usage:
        controller = AbortController()
        controller.signal.add_listener(lambda reason: task.cancel())
        controller.abort(AbortReason.ABORTED)
    """

    def __init__(self) -> None:
        self._reason: Optional[AbortReason] = None
        self._listeners: List[AbortListener] = []
        self._event: Optional[asyncio.Event] = None

    @property
    def aborted(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> Optional[AbortReason]:
        return self._reason

    def add_listener(self, listener: AbortListener) -> None:
        if self._reason is not None:
            self._notify(listener, self._reason)
            return
        self._listeners.append(listener)

    def remove_listener(self, listener: AbortListener) -> None:
        """Remove a listener. Removing an unknown listener is a no-op."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def wait(self) -> AbortReason:
        """Suspend until the latch fires and return the recorded reason."""
        if self._reason is None:
            if self._event is None:
                self._event = asyncio.Event()
            await self._event.wait()
        assert self._reason is not None
        return self._reason

    def _fire(self, reason: AbortReason) -> bool:
        if self._reason is not None:
            return False
        self._reason = reason
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            self._notify(listener, reason)
        if self._event is not None:
            self._event.set()
        return True

    @staticmethod
    def _notify(listener: AbortListener, reason: AbortReason) -> None:
        try:
            listener(reason)
        except Exception as e:
            logger.exception(f"Error dispatching abort ({reason.value}) to listener {listener!r}: {e}")

    def __repr__(self) -> str:
        state = self._reason.value if self._reason else "pending"
        return f"<AbortSignal {state}>"


class AbortController:
    """Write side of an abort latch; owns exactly one AbortSignal."""

    def __init__(self) -> None:
        self._signal = AbortSignal()

    @property
    def signal(self) -> AbortSignal:
        return self._signal

    def abort(self, reason: AbortReason = AbortReason.ABORTED) -> bool:
        """Fire the latch.

        Returns:
            True if this call fired the latch, False if it had already fired.
        """
        fired = self._signal._fire(reason)
        if fired:
            logger.debug(f"Abort latch fired with reason '{reason.value}'")
        return fired
