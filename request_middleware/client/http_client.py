"""
HTTP client: merges default request options, runs the middleware chain and
calls the transport as the chain's terminal handler.
"""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Union

from request_middleware.core.context import HttpContext
from request_middleware.core.errors import RequestError, RequestErrorType, normalize_error
from request_middleware.core.request import ConfigLike, HttpMethod, RequestConfig, merge_request_config
from request_middleware.core.response import ResponseData
from request_middleware.engine.engine import MiddlewareEngine
from request_middleware.engine.types import Middleware, Transport
from request_middleware.middlewares.retry import RetryOptions, RetryTransport
from request_middleware.settings import Settings
from request_middleware.transports.httpx_transport import HttpxTransport

logger = logging.getLogger(__name__)


class HttpClient:
    """
    Sends requests through a middleware chain to a Transport.

    Every call gets a fresh HttpContext. Middleware registered with `use()` runs
    for every call; `extra_middlewares` passed to `request()` run for that call
    only, after the registered ones.

    Attributes:
        transport (Transport): Executes the request at the end of the chain.
        defaults (Dict[str, Any]): Request options merged under every call's config.
    """

    def __init__(
        self,
        transport: Transport,
        middlewares: Optional[Iterable[Middleware[HttpContext]]] = None,
        defaults: Optional[Mapping[str, Any]] = None,
    ):
        self.transport = transport
        self.defaults: Dict[str, Any] = dict(defaults or {})
        self.engine: MiddlewareEngine[HttpContext] = MiddlewareEngine(middlewares, name="HttpClientEngine")

    def use(self, middleware: Middleware[HttpContext]) -> "HttpClient":
        """Register a middleware. Returns the client so registrations can be chained."""
        self.engine.use(middleware)
        return self

    async def request(
        self,
        config: ConfigLike,
        extra_middlewares: Optional[Sequence[Middleware[HttpContext]]] = None,
    ) -> ResponseData:
        """
        Send one request.

        Args:
            config: A RequestConfig or a mapping of its fields.
            extra_middlewares: Middleware for this call only.

        Returns:
            The response set by the transport or by a short-circuiting middleware.

        Raises:
            RequestError: Any transport failure, normalized into the taxonomy. Middleware
                failures propagate unchanged.
        """
        merged = merge_request_config(self.defaults, config)
        ctx = HttpContext(request=merged)

        async def send() -> None:
            # Middleware may have replaced ctx.request with a derived config.
            try:
                ctx.response = await self.transport.request(ctx.request)
            except Exception as e:
                error = normalize_error(e, ctx.request)
                ctx.error = error
                if error is e:
                    raise
                raise error from e

        await self.engine.dispatch(ctx, send, extra_middlewares)

        if ctx.response is None:
            raise RequestError(
                "No response received from transport", RequestErrorType.UNKNOWN, config=ctx.request
            )
        return ctx.response

    async def _request_with_method(
        self, method: HttpMethod, url: str, data: Any = None, **options: Any
    ) -> ResponseData:
        config: Dict[str, Any] = {**options, "url": url, "method": method}
        if data is not None:
            config["data"] = data
        return await self.request(config)

    async def get(self, url: str, **options: Any) -> ResponseData:
        return await self._request_with_method(HttpMethod.GET, url, **options)

    async def post(self, url: str, data: Any = None, **options: Any) -> ResponseData:
        return await self._request_with_method(HttpMethod.POST, url, data, **options)

    async def put(self, url: str, data: Any = None, **options: Any) -> ResponseData:
        return await self._request_with_method(HttpMethod.PUT, url, data, **options)

    async def patch(self, url: str, data: Any = None, **options: Any) -> ResponseData:
        return await self._request_with_method(HttpMethod.PATCH, url, data, **options)

    async def delete(self, url: str, **options: Any) -> ResponseData:
        return await self._request_with_method(HttpMethod.DELETE, url, **options)

    async def head(self, url: str, **options: Any) -> ResponseData:
        return await self._request_with_method(HttpMethod.HEAD, url, **options)

    async def options(self, url: str, **options: Any) -> ResponseData:
        return await self._request_with_method(HttpMethod.OPTIONS, url, **options)

    async def aclose(self) -> None:
        close = getattr(self.transport, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"<HttpClient transport={type(self.transport).__name__} engine={self.engine!r}>"


def create_http_client(
    transport: Optional[Transport] = None,
    middlewares: Optional[Iterable[Middleware[HttpContext]]] = None,
    defaults: Optional[Mapping[str, Any]] = None,
    settings: Optional[Settings] = None,
    retry: Union[RetryOptions, bool, None] = None,
) -> HttpClient:
    """
    Build an HttpClient.

    Args:
        transport: Defaults to an HttpxTransport.
        middlewares: Registered in order.
        defaults: Request options merged under every call. When `settings` is given,
            its base URL and timeout fill in options not already present.
        settings: Environment-driven configuration.
        retry: RetryOptions to wrap the transport with, True to build them from
            `settings`, or None/False for no retries.
    """
    if transport is None:
        transport = HttpxTransport()

    merged_defaults: Dict[str, Any] = {}
    if settings is not None:
        base_url = settings.get_base_url()
        timeout = settings.get_default_timeout()
        if base_url:
            merged_defaults["base_url"] = base_url
        if timeout is not None:
            merged_defaults["timeout"] = timeout
    merged_defaults.update(defaults or {})

    if retry is True:
        retry = RetryOptions.from_settings(settings)
    if isinstance(retry, RetryOptions):
        transport = RetryTransport(transport, retry)

    logger.debug(f"Creating HttpClient with transport {type(transport).__name__}")
    return HttpClient(transport, middlewares=middlewares, defaults=merged_defaults)
