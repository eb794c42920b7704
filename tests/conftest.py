from typing import Any, Callable, List, Optional

import pytest
from request_middleware.core.request import RequestConfig
from request_middleware.core.response import ResponseData

# Environment variables read by Settings; cleared so a developer's .env cannot leak into tests.
SETTINGS_ENV_VARS = [
    "LOG_LEVEL",
    "REQUEST_BASE_URL",
    "REQUEST_TIMEOUT",
    "RETRY_MAX_RETRIES",
    "RETRY_BACKOFF",
    "RETRY_BASE_DELAY",
    "RETRY_MAX_DELAY",
    "THROTTLE_LIMIT",
    "THROTTLE_INTERVAL",
    "API_KEY_ENV_VAR",
]


@pytest.fixture(autouse=True)
def clean_settings_env(monkeypatch):
    """AUTOUSE: Removes settings environment variables for every test."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class ScriptedTransport:
    """Transport that replays a script of outcomes: exceptions are raised, anything else is returned as data."""

    def __init__(self, outcomes: Optional[List[Any]] = None, status: int = 200):
        self.outcomes = list(outcomes or [])
        self.status = status
        self.calls: List[RequestConfig] = []
        self.closed = False

    async def request(self, config: RequestConfig) -> ResponseData:
        self.calls.append(config)
        outcome = self.outcomes.pop(0) if self.outcomes else {"ok": True}
        if isinstance(outcome, BaseException):
            raise outcome
        return ResponseData(status=self.status, status_text="OK", data=outcome, config=config)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def make_config() -> Callable[..., RequestConfig]:
    """Factory for RequestConfig with a default URL."""

    def _make(url: str = "https://api.example.com/items", **kwargs: Any) -> RequestConfig:
        return RequestConfig(url=url, **kwargs)

    return _make


@pytest.fixture
def scripted_transport() -> Callable[..., ScriptedTransport]:
    return ScriptedTransport
