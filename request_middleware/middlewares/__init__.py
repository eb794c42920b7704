from request_middleware.middlewares.api_key_header import ApiKeyHeaderMiddleware
from request_middleware.middlewares.cache import ResponseCache, cache_key, create_cache_middleware
from request_middleware.middlewares.exceptions import ApiKeyNotFoundError, MiddlewareError
from request_middleware.middlewares.request_logging import RequestLoggingMiddleware
from request_middleware.middlewares.retry import (
    DEFAULT_RETRYABLE_STATUS_CODES,
    RetryOptions,
    RetryTransport,
    calculate_delay,
    check_should_retry,
    create_retry_transport,
)
from request_middleware.middlewares.throttle import ThrottleMiddleware, create_throttle_middleware

__all__ = [
    "ApiKeyHeaderMiddleware",
    "ApiKeyNotFoundError",
    "DEFAULT_RETRYABLE_STATUS_CODES",
    "MiddlewareError",
    "RequestLoggingMiddleware",
    "ResponseCache",
    "RetryOptions",
    "RetryTransport",
    "ThrottleMiddleware",
    "cache_key",
    "calculate_delay",
    "check_should_retry",
    "create_cache_middleware",
    "create_retry_transport",
    "create_throttle_middleware",
]
