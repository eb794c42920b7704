"""Error taxonomy shared by the engine, transports, retry decorator and streaming bridge.

Every failure surfaced to a client caller is a RequestError of exactly one
RequestErrorType. Raw failures are mapped with `normalize_error`.
"""

import asyncio
import json
import time
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

import httpx

if TYPE_CHECKING:
    from request_middleware.core.request import RequestConfig
    from request_middleware.core.response import ResponseData


class RequestErrorType(str, Enum):
    NETWORK = "NETWORK"
    TIMEOUT = "TIMEOUT"
    HTTP = "HTTP"
    ABORTED = "ABORTED"
    PARSE = "PARSE"
    UNKNOWN = "UNKNOWN"


class RequestError(Exception):
    """Base exception for all request failures."""

    def __init__(
        self,
        message: str,
        error_type: RequestErrorType = RequestErrorType.UNKNOWN,
        *,
        status: Optional[int] = None,
        status_text: Optional[str] = None,
        config: Optional["RequestConfig"] = None,
        response: Optional["ResponseData"] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.status = status
        self.status_text = status_text
        self.config = config
        self.response = response
        self.cause = cause
        self.timestamp = time.time()
        if cause is not None:
            self.__cause__ = cause

    def is_network_error(self) -> bool:
        return self.error_type == RequestErrorType.NETWORK

    def is_timeout_error(self) -> bool:
        return self.error_type == RequestErrorType.TIMEOUT

    def is_http_error(self) -> bool:
        return self.error_type == RequestErrorType.HTTP

    def is_aborted_error(self) -> bool:
        return self.error_type == RequestErrorType.ABORTED

    def is_retryable(self) -> bool:
        """Network and timeout failures are retryable, as are HTTP 5xx responses."""
        if self.error_type in (RequestErrorType.NETWORK, RequestErrorType.TIMEOUT):
            return True
        if self.error_type == RequestErrorType.HTTP and self.status is not None and self.status >= 500:
            return True
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.__class__.__name__,
            "message": self.message,
            "type": self.error_type.value,
            "status": self.status,
            "status_text": self.status_text,
            "timestamp": self.timestamp,
            "url": self.config.url if self.config else None,
            "method": self.config.method.value if self.config else None,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, type={self.error_type.value})"


class NetworkError(RequestError):
    def __init__(
        self, message: str, config: Optional["RequestConfig"] = None, cause: Optional[BaseException] = None
    ):
        super().__init__(message, RequestErrorType.NETWORK, config=config, cause=cause)


class RequestTimeoutError(RequestError):
    """Raised when a request exceeds its timeout. `timeout` is in seconds."""

    def __init__(
        self,
        message: str,
        timeout: float = 0,
        config: Optional["RequestConfig"] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, RequestErrorType.TIMEOUT, config=config, cause=cause)
        self.timeout = timeout


class HttpError(RequestError):
    """A response arrived with a 4xx or 5xx status."""

    def __init__(
        self,
        message: str,
        status: int,
        status_text: str = "",
        config: Optional["RequestConfig"] = None,
        response: Optional["ResponseData"] = None,
    ):
        super().__init__(
            message, RequestErrorType.HTTP, status=status, status_text=status_text, config=config, response=response
        )

    def is_client_error(self) -> bool:
        return self.status is not None and 400 <= self.status < 500

    def is_server_error(self) -> bool:
        return self.status is not None and self.status >= 500


class AbortError(RequestError):
    def __init__(self, message: str = "Request aborted", config: Optional["RequestConfig"] = None):
        super().__init__(message, RequestErrorType.ABORTED, config=config)


class ParseError(RequestError):
    def __init__(
        self,
        message: str,
        config: Optional["RequestConfig"] = None,
        raw_response: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, RequestErrorType.PARSE, config=config, cause=cause)
        self.raw_response = raw_response


NETWORK_KEYWORDS = ("network", "failed to fetch", "econnrefused", "connection")


def normalize_error(error: Any, config: Optional["RequestConfig"] = None) -> RequestError:
    """Map any raw failure onto exactly one taxonomy kind.

    Priority: already-typed, cancellation, library-typed failures, then message
    keywords ("timeout", "abort", network words), and finally UNKNOWN.
    """
    if isinstance(error, RequestError):
        return error

    if isinstance(error, asyncio.CancelledError):
        return AbortError("Request aborted", config)

    if isinstance(error, (httpx.TimeoutException, TimeoutError)):
        timeout = config.timeout if config and config.timeout else 0
        return RequestTimeoutError(str(error) or "Request timed out", timeout, config, cause=error)

    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        return HttpError(
            f"HTTP Error: {response.status_code} {response.reason_phrase}",
            response.status_code,
            response.reason_phrase,
            config,
        )

    if isinstance(error, json.JSONDecodeError):
        return ParseError(str(error), config, raw_response=error.doc, cause=error)

    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return NetworkError(str(error) or "Network error", config, error)

    if isinstance(error, BaseException):
        message = str(error)
        lowered = message.lower()
        if "timeout" in lowered or "timed out" in lowered:
            timeout = config.timeout if config and config.timeout else 0
            return RequestTimeoutError(message, timeout, config, cause=error)
        if "abort" in lowered:
            return AbortError(message, config)
        if any(keyword in lowered for keyword in NETWORK_KEYWORDS):
            return NetworkError(message, config, error)
        return RequestError(message or error.__class__.__name__, RequestErrorType.UNKNOWN, config=config, cause=error)

    return RequestError(error if isinstance(error, str) else "Unknown error", RequestErrorType.UNKNOWN, config=config)


def create_http_error(
    status: int,
    status_text: str,
    config: Optional["RequestConfig"] = None,
    response: Optional["ResponseData"] = None,
) -> HttpError:
    return HttpError(f"HTTP Error: {status} {status_text}".rstrip(), status, status_text, config, response)


def is_request_error(error: Any) -> bool:
    return isinstance(error, RequestError)


def is_retryable_error(error: Any) -> bool:
    if isinstance(error, RequestError):
        return error.is_retryable()
    return False
