from request_middleware.streaming.queue import AsyncMessageQueue, ConcurrentPullError, QueueState
from request_middleware.streaming.session import EventStreamMessage, EventStreamSession

__all__ = [
    "AsyncMessageQueue",
    "ConcurrentPullError",
    "EventStreamMessage",
    "EventStreamSession",
    "QueueState",
]
