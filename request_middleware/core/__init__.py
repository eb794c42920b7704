from request_middleware.core.abort import AbortController, AbortReason, AbortSignal
from request_middleware.core.context import HttpContext
from request_middleware.core.errors import (
    AbortError,
    HttpError,
    NetworkError,
    ParseError,
    RequestError,
    RequestErrorType,
    RequestTimeoutError,
    create_http_error,
    is_request_error,
    is_retryable_error,
    normalize_error,
)
from request_middleware.core.request import HttpMethod, RequestConfig, ResponseType, merge_request_config
from request_middleware.core.response import ResponseData

__all__ = [
    "AbortController",
    "AbortError",
    "AbortReason",
    "AbortSignal",
    "HttpContext",
    "HttpError",
    "HttpMethod",
    "NetworkError",
    "ParseError",
    "RequestConfig",
    "RequestError",
    "RequestErrorType",
    "RequestTimeoutError",
    "ResponseData",
    "ResponseType",
    "create_http_error",
    "is_request_error",
    "is_retryable_error",
    "merge_request_config",
    "normalize_error",
]
