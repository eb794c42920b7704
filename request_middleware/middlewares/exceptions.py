# Middleware Exceptions

from typing import TYPE_CHECKING, Optional

from request_middleware.core.errors import RequestError, RequestErrorType

if TYPE_CHECKING:
    from request_middleware.core.request import RequestConfig


class MiddlewareError(RequestError):
    """Base exception for failures raised by bundled middleware.

    Kind UNKNOWN, so clients still only ever surface taxonomy errors.
    """

    def __init__(
        self,
        message: str,
        *,
        middleware_name: Optional[str] = None,
        config: Optional["RequestConfig"] = None,
    ):
        super().__init__(message, RequestErrorType.UNKNOWN, config=config)
        self.middleware_name = middleware_name


class ApiKeyNotFoundError(MiddlewareError):
    """Exception raised when the API key environment variable is not set or is empty."""

    pass
