"""Async HTTP client built around an onion-model middleware engine."""

from request_middleware.client import HttpClient, create_http_client
from request_middleware.core import (
    AbortController,
    AbortError,
    AbortReason,
    AbortSignal,
    HttpContext,
    HttpError,
    HttpMethod,
    NetworkError,
    ParseError,
    RequestConfig,
    RequestError,
    RequestErrorType,
    RequestTimeoutError,
    ResponseData,
    ResponseType,
    create_http_error,
    is_request_error,
    is_retryable_error,
    normalize_error,
)
from request_middleware.engine import (
    Middleware,
    MiddlewareEngine,
    NextCalledMultipleTimesError,
    NextFunction,
    Transport,
    create_middleware_engine,
)
from request_middleware.middlewares import (
    ApiKeyHeaderMiddleware,
    ApiKeyNotFoundError,
    MiddlewareError,
    RequestLoggingMiddleware,
    ResponseCache,
    RetryOptions,
    RetryTransport,
    ThrottleMiddleware,
    create_cache_middleware,
    create_retry_transport,
    create_throttle_middleware,
)
from request_middleware.streaming import AsyncMessageQueue, EventStreamMessage, EventStreamSession, QueueState
from request_middleware.transports import (
    EventStreamTransport,
    HttpxTransport,
    create_event_stream_transport,
    create_httpx_transport,
)

__all__ = [
    "AbortController",
    "AbortError",
    "AbortReason",
    "AbortSignal",
    "ApiKeyHeaderMiddleware",
    "ApiKeyNotFoundError",
    "AsyncMessageQueue",
    "EventStreamMessage",
    "EventStreamSession",
    "EventStreamTransport",
    "HttpClient",
    "HttpContext",
    "HttpError",
    "HttpMethod",
    "HttpxTransport",
    "Middleware",
    "MiddlewareEngine",
    "MiddlewareError",
    "NetworkError",
    "NextCalledMultipleTimesError",
    "NextFunction",
    "ParseError",
    "QueueState",
    "RequestConfig",
    "RequestError",
    "RequestErrorType",
    "RequestLoggingMiddleware",
    "RequestTimeoutError",
    "ResponseCache",
    "ResponseData",
    "ResponseType",
    "RetryOptions",
    "RetryTransport",
    "ThrottleMiddleware",
    "Transport",
    "create_cache_middleware",
    "create_event_stream_transport",
    "create_http_client",
    "create_http_error",
    "create_httpx_transport",
    "create_middleware_engine",
    "create_retry_transport",
    "create_throttle_middleware",
    "is_request_error",
    "is_retryable_error",
    "normalize_error",
]
