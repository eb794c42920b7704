"""
Server-Sent Events transport.

`request()` resolves with a ResponseData whose `data` is an EventStreamSession
as soon as the server answers with a success status. The event stream itself is
read by a background task that pushes messages into the session.
"""

import asyncio
import functools
import inspect
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, FrozenSet, Iterable, List, Optional, Union

import httpx

from request_middleware.core.errors import (
    AbortError,
    RequestError,
    RequestErrorType,
    create_http_error,
    normalize_error,
)
from request_middleware.core.request import HttpMethod, RequestConfig
from request_middleware.core.response import ResponseData
from request_middleware.streaming.session import EventStreamMessage, EventStreamSession
from request_middleware.transports.utils import build_url, encode_body, has_header, headers_to_dict, merge_headers

logger = logging.getLogger(__name__)

EVENT_STREAM_MEDIA_TYPE = "text/event-stream"
DEFAULT_ALLOWED_METHODS: FrozenSet[HttpMethod] = frozenset({HttpMethod.GET, HttpMethod.POST})

OpenObserver = Callable[[ResponseData], Union[None, Awaitable[None]]]
MessageObserver = Callable[[EventStreamMessage], None]
ErrorObserver = Callable[[RequestError], None]
CloseObserver = Callable[[], None]


async def parse_event_stream(lines: AsyncIterator[str]) -> AsyncIterator[EventStreamMessage]:
    """Parse SSE lines into messages.

    Supports the `data`, `event` and `id` fields, multi-line data and comment
    lines. An event is dispatched on a blank line; a trailing event without one
    is discarded.
    """
    data: List[str] = []
    event_type: Optional[str] = None
    event_id: Optional[str] = None

    async for raw_line in lines:
        line = raw_line.rstrip("\r\n")
        if not line:
            if data:
                yield EventStreamMessage(data="\n".join(data), type=event_type, id=event_id)
            data = []
            event_type = None
            continue
        if line.startswith(":"):
            continue

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "data":
            data.append(value)
        elif field == "event":
            event_type = value or None
        elif field == "id":
            if "\0" not in value:
                event_id = value or None
        # "retry" and unknown fields are ignored.


class EventStreamTransport:
    """
    Transport that opens an SSE connection and hands back an EventStreamSession.

    Attributes:
        name (str): Name used in log lines.
        base_url (Optional[str]): Prefix for relative request URLs.
        default_headers (Dict[str, str]): Headers sent with every request; request headers win.
        auto_accept_event_stream (bool): Add `Accept: text/event-stream` unless an Accept header is present.
        allowed_methods (FrozenSet[HttpMethod]): Methods accepted; others are rejected before connecting.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        default_headers: Optional[Dict[str, str]] = None,
        auto_accept_event_stream: bool = True,
        allowed_methods: Optional[Iterable[Union[HttpMethod, str]]] = None,
        on_open: Optional[OpenObserver] = None,
        on_message: Optional[MessageObserver] = None,
        on_error: Optional[ErrorObserver] = None,
        on_close: Optional[CloseObserver] = None,
        name: Optional[str] = None,
    ):
        self._client = client
        self.base_url = base_url
        self.default_headers = dict(default_headers or {})
        self.auto_accept_event_stream = auto_accept_event_stream
        self.allowed_methods = (
            frozenset(HttpMethod(str(m).upper()) for m in allowed_methods)
            if allowed_methods is not None
            else DEFAULT_ALLOWED_METHODS
        )
        self.on_open = on_open
        self.on_message = on_message
        self.on_error = on_error
        self.on_close = on_close
        self.name = name or self.__class__.__name__

    async def request(self, config: RequestConfig) -> ResponseData:
        """
        Open the event stream.

        Returns:
            ResponseData whose `data` is the EventStreamSession.

        Raises:
            RequestError: The method is not allowed; raised before any connection attempt.
            AbortError: The caller's signal was already aborted, or aborted before the stream opened.
            HttpError: The server answered the open with a non-success status.
            RequestTimeoutError: The timeout fired before the stream opened.
            NetworkError: The connection failed before the stream opened.
        """
        if config.method not in self.allowed_methods:
            allowed = ", ".join(sorted(m.value for m in self.allowed_methods))
            raise RequestError(
                f"{self.name} does not support method {config.method.value} (allowed: {allowed})",
                RequestErrorType.UNKNOWN,
                config=config,
            )
        if config.signal is not None and config.signal.aborted:
            raise AbortError("Request aborted by user", config)

        url = build_url(config, config.base_url or self.base_url)
        headers = merge_headers(self.default_headers, config.headers)
        if self.auto_accept_event_stream and not has_header(headers, "Accept"):
            headers["Accept"] = EVENT_STREAM_MEDIA_TYPE
        content, headers = encode_body(config.data, headers)

        loop = asyncio.get_running_loop()
        opened: asyncio.Future = loop.create_future()
        session = EventStreamSession(config)

        task = asyncio.create_task(self._run(url, headers, content, config, session, opened))
        task.add_done_callback(functools.partial(self._finalize, config, session, opened))
        session.signal.add_listener(lambda _reason: task.cancel())
        session.link(config.signal, config.timeout)

        try:
            return await asyncio.shield(opened)
        except asyncio.CancelledError:
            if not opened.done():
                # The caller stopped waiting for the handshake; nobody will consume the stream.
                opened.cancel()
                session.cancel()
            raise

    async def _run(
        self,
        url: str,
        headers: Dict[str, str],
        content: Any,
        config: RequestConfig,
        session: EventStreamSession,
        opened: asyncio.Future,
    ) -> None:
        logger.info(f"Opening event stream {config.method.value} {url} ({self.name})")
        if self._client is not None:
            await self._consume(self._client, url, headers, content, config, session, opened)
            return
        async with httpx.AsyncClient(timeout=None) as client:
            await self._consume(client, url, headers, content, config, session, opened)

    async def _consume(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: Dict[str, str],
        content: Any,
        config: RequestConfig,
        session: EventStreamSession,
        opened: asyncio.Future,
    ) -> None:
        async with client.stream(
            config.method.value, url, headers=headers, content=content, timeout=None
        ) as response:
            if not response.is_success:
                body = (await response.aread()).decode("utf-8", errors="replace")
                partial = ResponseData(
                    status=response.status_code,
                    status_text=response.reason_phrase,
                    data=body or None,
                    headers=headers_to_dict(response.headers),
                    config=config,
                )
                error = create_http_error(response.status_code, response.reason_phrase, config, partial)
                if body:
                    error.message = f"{error.message} - {body}"
                    error.args = (error.message,)
                raise error

            result = ResponseData(
                status=response.status_code,
                status_text=response.reason_phrase,
                data=session,
                headers=headers_to_dict(response.headers),
                config=config,
            )
            if not opened.done():
                opened.set_result(result)
            logger.info(f"Event stream opened with status {response.status_code} ({self.name})")

            if self.on_open is not None:
                outcome = self.on_open(result)
                if inspect.isawaitable(outcome):
                    await outcome

            async for message in parse_event_stream(response.aiter_lines()):
                session.queue.push(message)
                if self.on_message is not None:
                    self.on_message(message)

        session.queue.close()
        if self.on_close is not None:
            self.on_close()

    def _finalize(
        self,
        config: RequestConfig,
        session: EventStreamSession,
        opened: asyncio.Future,
        task: "asyncio.Task[None]",
    ) -> None:
        """Settle the handshake and the session once the reader task ends, however it ended."""
        error: Optional[RequestError] = None
        if task.cancelled():
            error = session.abort_error()
            if error is None and not opened.done():
                error = AbortError("Event stream cancelled before it opened", config)
        else:
            raw = task.exception()
            if raw is not None:
                error = normalize_error(raw, config)
                logger.error(f"Event stream failed: {error} ({self.name})")

        if error is not None:
            if not opened.done():
                opened.set_exception(error)
            session.queue.fail(error)
            if self.on_error is not None:
                try:
                    self.on_error(error)
                except Exception as e:
                    logger.exception(f"Error in on_error observer: {e} ({self.name})")
        elif not session.queue.is_terminal and self.on_close is not None:
            self.on_close()
        session.finish()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()


def create_event_stream_transport(base_url: Optional[str] = None, **kwargs: Any) -> EventStreamTransport:
    return EventStreamTransport(base_url=base_url, **kwargs)
