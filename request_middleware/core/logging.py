"""
Logging for the request_middleware package.

Every module logs under the `request_middleware` logger namespace. Applications
that already configure logging need nothing from here; `setup_logging()` is a
convenience that attaches one stderr handler to the package logger only, so the
application's root logger is left alone.
"""

import logging
import sys
from datetime import UTC, datetime
from typing import Any, Dict, Optional, TextIO

from request_middleware.settings import Settings

PACKAGE_LOGGER_NAME = "request_middleware"
REQUEST_LOGGER_NAME = f"{PACKAGE_LOGGER_NAME}.pipeline.request"
MIDDLEWARE_LOGGER_NAME = f"{PACKAGE_LOGGER_NAME}.pipeline.middleware"

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
DEFAULT_LOG_LEVEL = "INFO"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# The transports sit on top of these; their DEBUG output is per-socket-event.
NOISY_LIBRARIES = ("httpx", "httpcore")


class _PackageHandler(logging.StreamHandler):
    """Marks the handler installed by setup_logging so repeated calls replace it."""


def setup_logging(level: Optional[str] = None, stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Attach a stderr handler to the `request_middleware` logger.

    Args:
        level: Level name; defaults to the LOG_LEVEL setting. An unknown name
            falls back to INFO with a notice on stderr.
        stream: Handler destination; defaults to stderr.

    Returns:
        The package logger.
    """
    level_name = (level or Settings().get_log_level(default=DEFAULT_LOG_LEVEL)).upper()
    if level_name not in VALID_LOG_LEVELS:
        print(
            f"request_middleware: ignoring unknown log level '{level_name}', using {DEFAULT_LOG_LEVEL} "
            f"(expected one of {', '.join(VALID_LOG_LEVELS)})",
            file=sys.stderr,
        )
        level_name = DEFAULT_LOG_LEVEL

    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    package_logger.setLevel(level_name)
    for handler in [h for h in package_logger.handlers if isinstance(h, _PackageHandler)]:
        package_logger.removeHandler(handler)

    handler = _PackageHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(handler)

    for lib_name in NOISY_LIBRARIES:
        logging.getLogger(lib_name).setLevel(logging.WARNING)

    package_logger.debug(f"Package logging enabled at {level_name}")
    return package_logger


def log_request_state(request_id: str, stage: str, details: Dict[str, Any]) -> None:
    """DEBUG record of a request at one stage of its dispatch; `details` become record attributes."""
    logging.getLogger(REQUEST_LOGGER_NAME).debug(
        f"[{request_id}] {stage}",
        extra={"request_id": request_id, "stage": stage, "timestamp": datetime.now(UTC).isoformat(), **details},
    )


def log_middleware_execution(
    request_id: str,
    middleware_name: str,
    status: str,
    duration: Optional[float] = None,
    error: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """One record per middleware outcome. `status == "error"` logs at ERROR, anything else at INFO."""
    extra: Dict[str, Any] = {"request_id": request_id, "middleware_name": middleware_name, "outcome": status}
    if duration is not None:
        extra["duration_seconds"] = round(duration, 6)
    if error:
        extra["error"] = error
    extra.update(details or {})

    timing = f" in {duration * 1000:.1f}ms" if duration is not None else ""
    if status == "error":
        logging.getLogger(MIDDLEWARE_LOGGER_NAME).error(
            f"[{request_id}] {middleware_name} failed{timing}: {error}", extra=extra
        )
    else:
        logging.getLogger(MIDDLEWARE_LOGGER_NAME).info(f"[{request_id}] {middleware_name} {status}{timing}", extra=extra)
