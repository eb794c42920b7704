"""
Retry decorator for transports.

Every attempt happens inside a single terminal-handler call; middleware only
sees the final outcome.
"""

import asyncio
import logging
import random
from typing import Callable, FrozenSet, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from request_middleware.core.errors import AbortError, RequestError, normalize_error
from request_middleware.core.request import RequestConfig
from request_middleware.core.response import ResponseData
from request_middleware.engine.types import Transport
from request_middleware.settings import Settings

logger = logging.getLogger(__name__)

BackoffStrategy = Literal["linear", "exponential"]

DEFAULT_RETRYABLE_STATUS_CODES: FrozenSet[int] = frozenset({408, 429, 500, 502, 503, 504})

# Upper bound of the random jitter added to exponential delays, as a fraction of the delay.
JITTER_RATIO = 0.25

ShouldRetry = Callable[[BaseException, int], bool]
OnRetry = Callable[[BaseException, int], None]


class RetryOptions(BaseModel):
    """Retry policy. Delays are in seconds.

    Attributes:
        max_retries: Additional attempts after the first one.
        backoff: Delay growth between attempts.
        base_delay: Delay before the first retry.
        max_delay: Clamp applied to every computed delay.
        retryable_status_codes: HTTP statuses worth retrying when no predicate is given.
        should_retry: Predicate `(error, attempt)` overriding the default classification.
        on_retry: Observer `(error, attempt_number)` called before each retry sleep.
    """

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=0)
    backoff: BackoffStrategy = Field(default="exponential")
    base_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=30.0, ge=0)
    retryable_status_codes: FrozenSet[int] = Field(default=DEFAULT_RETRYABLE_STATUS_CODES)
    should_retry: Optional[ShouldRetry] = Field(default=None, exclude=True)
    on_retry: Optional[OnRetry] = Field(default=None, exclude=True)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides) -> "RetryOptions":
        settings = settings or Settings()
        values = {
            "max_retries": settings.get_retry_max_retries(),
            "backoff": settings.get_retry_backoff(),
            "base_delay": settings.get_retry_base_delay(),
            "max_delay": settings.get_retry_max_delay(),
        }
        values.update(overrides)
        return cls(**values)


def calculate_delay(
    attempt: int,
    backoff: BackoffStrategy,
    base_delay: float,
    max_delay: float,
    rand: Callable[[], float] = random.random,
) -> float:
    """Delay before retry number `attempt + 1`.

    Exponential: `base_delay * 2**attempt` plus up to 25% jitter.
    Linear: `base_delay * (attempt + 1)`.
    Both are clamped to `max_delay`.
    """
    if backoff == "exponential":
        delay = base_delay * (2**attempt)
        delay += delay * rand() * JITTER_RATIO
    else:
        delay = base_delay * (attempt + 1)
    return min(delay, max_delay)


def check_should_retry(
    error: BaseException,
    attempt: int,
    retryable_status_codes: FrozenSet[int] = DEFAULT_RETRYABLE_STATUS_CODES,
    custom_should_retry: Optional[ShouldRetry] = None,
) -> bool:
    """Decide whether a failed attempt is worth retrying.

    Aborted requests are never retried. Otherwise a caller predicate wins;
    without one, the error is normalized; HTTP errors are retried when their
    status is in `retryable_status_codes` and other kinds follow the taxonomy.
    """
    if isinstance(error, RequestError) and error.is_aborted_error():
        return False

    if custom_should_retry is not None:
        return custom_should_retry(error, attempt)

    classified = normalize_error(error)
    if classified.is_http_error() and classified.status is not None:
        return classified.status in retryable_status_codes
    return classified.is_retryable()


class RetryTransport:
    """A Transport that retries failed calls of the wrapped transport.

    Attributes:
        transport: The wrapped transport.
        options: The retry policy, shared by every call.
    """

    def __init__(self, transport: Transport, options: Optional[RetryOptions] = None, name: Optional[str] = None):
        self.transport = transport
        self.options = options or RetryOptions()
        self.name = name or f"{self.__class__.__name__}({type(transport).__name__})"

    async def request(self, config: RequestConfig) -> ResponseData:
        """
        Run the wrapped transport, retrying retryable failures with backoff.

        Raises:
            AbortError: The request's signal was aborted between attempts.
            Exception: The last failure, unchanged, once retries are exhausted or
                the failure is not retryable.
        """
        options = self.options
        signal = config.signal

        for attempt in range(options.max_retries + 1):
            if attempt > 0 and signal is not None and signal.aborted:
                logger.info(f"Stopping retries for {config.url}: request aborted ({self.name})")
                raise AbortError("Request aborted by user", config)

            try:
                return await self.transport.request(config)
            except Exception as error:
                if attempt == options.max_retries:
                    if options.max_retries:
                        logger.warning(
                            f"Giving up on {config.method.value} {config.url} after {attempt + 1} attempts: "
                            f"{error} ({self.name})"
                        )
                    raise
                if signal is not None and signal.aborted:
                    raise
                if not check_should_retry(error, attempt, options.retryable_status_codes, options.should_retry):
                    raise

                if options.on_retry is not None:
                    options.on_retry(error, attempt + 1)

                delay = calculate_delay(attempt, options.backoff, options.base_delay, options.max_delay)
                logger.warning(
                    f"Attempt {attempt + 1}/{options.max_retries + 1} for {config.method.value} {config.url} "
                    f"failed: {error}. Retrying in {delay:.3f}s ({self.name})"
                )
                await asyncio.sleep(delay)

        # Unreachable.
        raise RuntimeError("retry loop exited without a result")

    async def aclose(self) -> None:
        close = getattr(self.transport, "aclose", None)
        if close is not None:
            await close()


def create_retry_transport(transport: Transport, options: Optional[RetryOptions] = None, **kwargs) -> RetryTransport:
    """Wrap a transport with retries. Keyword arguments build RetryOptions when `options` is omitted."""
    if options is None:
        options = RetryOptions(**kwargs)
    elif kwargs:
        options = options.model_copy(update=kwargs)
    return RetryTransport(transport, options)
