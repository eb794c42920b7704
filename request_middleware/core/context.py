# Defines the HttpContext threaded through one dispatch of the middleware engine.

import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from psygnal.containers import EventedDict

from request_middleware.core.request import RequestConfig
from request_middleware.core.response import ResponseData


@dataclass
class HttpContext:
    """Holds the state for a single request through the middleware chain.

    Attributes:
        request: The request config for this call. Middleware replaces it with a
            derived config rather than mutating it.
        response: The response, once the transport (or a short-circuiting
            middleware such as a cache) has produced one.
        error: The normalized failure, if the terminal handler raised. It may be
            inspected by outer middleware before the exception finishes unwinding.
        state: A general-purpose store for middleware to share information.
        request_id: A unique identifier used to correlate log lines.
    """

    request: RequestConfig
    response: Optional[ResponseData] = None
    error: Optional[BaseException] = None
    state: EventedDict = field(default_factory=EventedDict)
    request_id: uuid.UUID = field(default_factory=uuid.uuid4)

    def get_state(self, key: str, default: Any = None) -> Any:
        return self.state.get(key, default)
