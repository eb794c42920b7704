from request_middleware.transports.event_stream import (
    EventStreamTransport,
    create_event_stream_transport,
    parse_event_stream,
)
from request_middleware.transports.httpx_transport import HttpxTransport, create_httpx_transport

__all__ = [
    "EventStreamTransport",
    "HttpxTransport",
    "create_event_stream_transport",
    "create_httpx_transport",
    "parse_event_stream",
]
