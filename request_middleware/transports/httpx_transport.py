import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import httpx

from request_middleware.core.abort import AbortReason
from request_middleware.core.errors import (
    AbortError,
    NetworkError,
    RequestTimeoutError,
    create_http_error,
    normalize_error,
)
from request_middleware.core.request import HttpMethod, RequestConfig
from request_middleware.core.response import ResponseData
from request_middleware.transports.utils import build_url, decode_body, encode_body, headers_to_dict, merge_headers

logger = logging.getLogger(__name__)

RequestHook = Callable[[RequestConfig], Union[RequestConfig, Awaitable[RequestConfig]]]
ResponseHook = Callable[[ResponseData], Union[ResponseData, Awaitable[ResponseData]]]


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class HttpxTransport:
    """
    Transport that sends requests with httpx.

    When no client is supplied, a short-lived `httpx.AsyncClient` is opened per
    request and only `config.timeout` bounds it. A supplied client is shared,
    applies its own default timeout to requests that set none, and is closed by
    `aclose()`.

    Attributes:
        name (str): Name used in log lines.
        base_url (Optional[str]): Prefix for relative request URLs.
        default_headers (Dict[str, str]): Headers sent with every request; request headers win.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        default_headers: Optional[Dict[str, str]] = None,
        request_hook: Optional[RequestHook] = None,
        response_hook: Optional[ResponseHook] = None,
        name: Optional[str] = None,
    ):
        self._client = client
        self.base_url = base_url
        self.default_headers = dict(default_headers or {})
        self.request_hook = request_hook
        self.response_hook = response_hook
        self.name = name or self.__class__.__name__

    async def request(self, config: RequestConfig) -> ResponseData:
        """
        Send one request and decode its response.

        Raises:
            AbortError: The caller's signal aborted before or during the request.
            RequestTimeoutError: The request exceeded `config.timeout`.
            HttpError: The server answered with a 4xx or 5xx status.
            ParseError: The server declared JSON but the body is not valid JSON.
            NetworkError: The connection failed.
        """
        if self.request_hook is not None:
            config = await _maybe_await(self.request_hook(config))

        signal = config.signal
        if signal is not None and signal.aborted:
            raise AbortError("Request aborted by user", config)

        url = build_url(config, config.base_url or self.base_url)
        headers = merge_headers(self.default_headers, config.headers)
        content, headers = encode_body(config.data, headers)

        target = f"{config.method.value} {url} ({self.name})"
        logger.debug(f"Sending {target}")

        send = asyncio.ensure_future(self._send(config.method, url, headers, content, config.timeout))

        def on_abort(_reason: AbortReason) -> None:
            send.cancel()

        if signal is not None:
            signal.add_listener(on_abort)
        try:
            response = await send
        except asyncio.CancelledError:
            if signal is not None and signal.aborted:
                logger.info(f"Request aborted by user: {target}")
                raise AbortError("Request aborted by user", config) from None
            raise
        except httpx.TimeoutException as e:
            logger.error(f"Timeout error during request: {e} {target}")
            message = f"Request timeout after {config.timeout}s" if config.timeout else "Request timed out"
            raise RequestTimeoutError(message, config.timeout or 0, config, cause=e) from e
        except httpx.TransportError as e:
            logger.error(f"Connection error during request: {e} {target}")
            raise NetworkError(str(e) or "Network error", config, e) from e
        except Exception as e:
            logger.exception(f"Unexpected error during request: {e} {target}")
            error = normalize_error(e, config)
            if error is e:
                raise
            raise error from e
        finally:
            if signal is not None:
                signal.remove_listener(on_abort)

        return await self._build_response(response, config)

    async def _send(
        self,
        method: HttpMethod,
        url: str,
        headers: Dict[str, str],
        content: Any,
        timeout: Optional[float],
    ) -> httpx.Response:
        if self._client is not None:
            # A supplied client keeps its own default when the request sets no timeout.
            client_timeout = timeout if timeout else httpx.USE_CLIENT_DEFAULT
            return await self._client.request(
                method.value, url, headers=headers, content=content, timeout=client_timeout
            )
        # None disables every httpx timeout.
        async with httpx.AsyncClient(timeout=None) as client:
            return await client.request(method.value, url, headers=headers, content=content, timeout=timeout)

    async def _build_response(self, response: httpx.Response, config: RequestConfig) -> ResponseData:
        if not response.is_success:
            partial = ResponseData(
                status=response.status_code,
                status_text=response.reason_phrase,
                data=response.text or None,
                headers=headers_to_dict(response.headers),
                config=config,
            )
            logger.info(f"Received error status {response.status_code} for {config.method.value} {config.url}")
            raise create_http_error(response.status_code, response.reason_phrase, config, partial)

        data = decode_body(response, config)
        result = ResponseData(
            status=response.status_code,
            status_text=response.reason_phrase,
            data=data,
            headers=headers_to_dict(response.headers),
            config=config,
        )
        if self.response_hook is not None:
            result = await _maybe_await(self.response_hook(result))
        return result

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()


def create_httpx_transport(base_url: Optional[str] = None, **kwargs: Any) -> HttpxTransport:
    return HttpxTransport(base_url=base_url, **kwargs)


