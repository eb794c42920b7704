"""Tests for HttpClient, including end-to-end runs through real transports over httpx.MockTransport."""

import logging
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from request_middleware.client.http_client import HttpClient, create_http_client
from request_middleware.core.context import HttpContext
from request_middleware.core.errors import (
    HttpError,
    NetworkError,
    RequestError,
    RequestErrorType,
)
from request_middleware.core.request import HttpMethod, RequestConfig
from request_middleware.core.response import ResponseData
from request_middleware.middlewares.api_key_header import ApiKeyHeaderMiddleware
from request_middleware.middlewares.cache import ResponseCache
from request_middleware.middlewares.retry import RetryOptions, RetryTransport
from request_middleware.settings import Settings
from request_middleware.transports.event_stream import EventStreamTransport
from request_middleware.transports.httpx_transport import HttpxTransport

SLEEP_TARGET = "request_middleware.middlewares.retry.asyncio.sleep"


class TestHttpClientRequest:
    @pytest.mark.asyncio
    async def test_defaults_are_merged_before_dispatch(self, scripted_transport):
        transport = scripted_transport()
        client = HttpClient(transport, defaults={"base_url": "https://api.example.com", "headers": {"X-A": "1"}})

        await client.request({"url": "/items", "headers": {"X-B": "2"}})

        sent = transport.calls[0]
        assert sent.base_url == "https://api.example.com"
        assert sent.headers == {"X-A": "1", "X-B": "2"}

    @pytest.mark.asyncio
    async def test_transport_receives_config_derived_by_middleware(self, scripted_transport, monkeypatch):
        monkeypatch.setenv("CLIENT_TEST_KEY", "k")
        transport = scripted_transport()
        client = HttpClient(transport).use(ApiKeyHeaderMiddleware("CLIENT_TEST_KEY"))

        response = await client.get("/items")

        assert transport.calls[0].headers["Authorization"] == "Bearer k"
        assert response.config is transport.calls[0]

    @pytest.mark.asyncio
    async def test_each_call_gets_a_fresh_context(self, scripted_transport):
        contexts = []

        async def capture(ctx, next):
            contexts.append(ctx)
            await next()

        client = HttpClient(scripted_transport(), middlewares=[capture])
        await client.get("/a")
        await client.get("/b")

        assert contexts[0] is not contexts[1]
        assert contexts[0].state is not contexts[1].state

    @pytest.mark.asyncio
    async def test_raw_transport_failure_is_normalized_and_recorded(self):
        observed = []

        async def observer(ctx: HttpContext, next):
            try:
                await next()
            finally:
                observed.append(ctx.error)

        transport = AsyncMock()
        raw = ConnectionError("connection refused")
        transport.request.side_effect = raw
        client = HttpClient(transport, middlewares=[observer])

        with pytest.raises(NetworkError) as exc_info:
            await client.get("/items")

        assert exc_info.value.__cause__ is raw
        assert observed == [exc_info.value]

    @pytest.mark.asyncio
    async def test_short_circuiting_middleware_response_is_returned(self):
        transport = AsyncMock()

        async def canned(ctx, next):
            ctx.response = ResponseData(status=200, data="canned", config=ctx.request)

        response = await HttpClient(transport, middlewares=[canned]).get("/items")

        assert response.data == "canned"
        transport.request.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_response_raises_unknown(self):
        async def swallow(ctx, next):
            return None

        with pytest.raises(RequestError) as exc_info:
            await HttpClient(AsyncMock(), middlewares=[swallow]).get("/items")

        assert exc_info.value.error_type == RequestErrorType.UNKNOWN
        assert exc_info.value.message == "No response received from transport"

    @pytest.mark.asyncio
    async def test_extra_middlewares_apply_to_one_call(self, scripted_transport):
        labels = []

        async def tag(ctx, next):
            labels.append(ctx.request.url)
            await next()

        client = HttpClient(scripted_transport())
        await client.request(RequestConfig(url="/once"), extra_middlewares=[tag])
        await client.get("/twice")

        assert labels == ["/once"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "helper, method, sends_data",
        [
            ("get", HttpMethod.GET, False),
            ("delete", HttpMethod.DELETE, False),
            ("head", HttpMethod.HEAD, False),
            ("options", HttpMethod.OPTIONS, False),
            ("post", HttpMethod.POST, True),
            ("put", HttpMethod.PUT, True),
            ("patch", HttpMethod.PATCH, True),
        ],
    )
    async def test_method_helpers(self, scripted_transport, helper, method, sends_data):
        transport = scripted_transport()
        client = HttpClient(transport)
        args = ("/items", {"name": "x"}) if sends_data else ("/items",)

        await getattr(client, helper)(*args, params={"v": 1})

        sent = transport.calls[0]
        assert sent.method == method
        assert sent.params == {"v": 1}
        assert sent.data == ({"name": "x"} if sends_data else None)

    @pytest.mark.asyncio
    async def test_async_context_manager_closes_transport(self, scripted_transport):
        transport = scripted_transport()
        async with HttpClient(transport) as client:
            await client.get("/items")
        assert transport.closed


class TestCreateHttpClient:
    def test_settings_fill_defaults(self, monkeypatch, scripted_transport):
        monkeypatch.setenv("REQUEST_BASE_URL", "https://env.example.com")
        monkeypatch.setenv("REQUEST_TIMEOUT", "12")

        client = create_http_client(scripted_transport(), settings=Settings(), defaults={"timeout": 3})

        assert client.defaults == {"base_url": "https://env.example.com", "timeout": 3}

    def test_retry_from_settings(self, monkeypatch, scripted_transport):
        monkeypatch.setenv("RETRY_MAX_RETRIES", "7")
        inner = scripted_transport()

        client = create_http_client(inner, settings=Settings(), retry=True)

        assert isinstance(client.transport, RetryTransport)
        assert client.transport.transport is inner
        assert client.transport.options.max_retries == 7

    def test_default_transport(self):
        client = create_http_client()
        assert isinstance(client.transport, HttpxTransport)
        assert client.defaults == {}


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_network_errors_then_success_with_linear_backoff(self, caplog):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"ok": True})

        inner = HttpxTransport(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        transport = RetryTransport(inner, RetryOptions(max_retries=3, backoff="linear", base_delay=0.1))
        client = HttpClient(transport, defaults={"base_url": "https://api.example.com"})

        with patch(SLEEP_TARGET, new_callable=AsyncMock) as sleep:
            with caplog.at_level(logging.WARNING, logger="request_middleware.middlewares.retry"):
                response = await client.get("/items")

        assert response.data == {"ok": True}
        assert len(attempts) == 3
        assert [c.args[0] for c in sleep.await_args_list] == pytest.approx([0.1, 0.2])
        assert sum("Retrying in" in r.getMessage() for r in caplog.records) == 2

    @pytest.mark.asyncio
    async def test_http_error_is_not_retried_and_reaches_caller(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404, text="nope")

        inner = HttpxTransport(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        client = HttpClient(RetryTransport(inner, RetryOptions(max_retries=3)))

        with pytest.raises(HttpError) as exc_info:
            await client.get("https://api.example.com/items")

        assert exc_info.value.status == 404
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_cache_avoids_second_network_call(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"n": len(calls)})

        inner = HttpxTransport(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        client = HttpClient(inner, middlewares=[ResponseCache()])

        first = await client.get("https://api.example.com/items", params={"q": "a"})
        second = await client.get("https://api.example.com/items", params={"q": "a"})

        assert first.data == second.data == {"n": 1}
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_cache_does_not_replay_a_consumed_stream(self):
        def handler(request):
            return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=b"data: one\n\n")

        transport = EventStreamTransport(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        client = HttpClient(transport, middlewares=[ResponseCache()])

        first = await client.get("https://stream.example.com/events")
        first_messages = [m.data async for m in first.data.stream]
        second = await client.get("https://stream.example.com/events")
        second_messages = [m.data async for m in second.data.stream]

        assert second.data is not first.data
        assert first_messages == second_messages == ["one"]

    @pytest.mark.asyncio
    async def test_non_get_against_get_only_stream_is_rejected_before_connecting(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=b"")

        transport = EventStreamTransport(
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)), allowed_methods=["GET"]
        )
        client = HttpClient(transport)

        with patch("request_middleware.transports.event_stream.EventStreamSession") as mock_session:
            with pytest.raises(RequestError) as exc_info:
                await client.post("https://stream.example.com/events", {"q": "x"})

        assert exc_info.value.error_type == RequestErrorType.UNKNOWN
        assert calls == []
        mock_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_stream_through_client(self):
        def handler(request):
            return httpx.Response(
                200, headers={"content-type": "text/event-stream"}, content=b"data: one\n\ndata: two\n\n"
            )

        transport = EventStreamTransport(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        async with HttpClient(transport) as client:
            response = await client.get("https://stream.example.com/events")
            messages = [m.data async for m in response.data.stream]

        assert messages == ["one", "two"]
