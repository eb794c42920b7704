from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from request_middleware.core.abort import AbortSignal


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class ResponseType(str, Enum):
    """How a transport decodes the response body."""

    JSON = "json"
    TEXT = "text"
    BYTES = "bytes"


class RequestConfig(BaseModel):
    """Description of one outgoing request.

    Instances are frozen: middleware that needs a different request builds a
    derived config with `model_copy(update=...)` and assigns it to the context.
    Unknown keyword arguments are kept as extension fields.
    """

    model_config = ConfigDict(frozen=True, extra="allow", arbitrary_types_allowed=True)

    url: str = Field()
    method: HttpMethod = Field(default=HttpMethod.GET)
    headers: Dict[str, str] = Field(default_factory=dict)
    params: Dict[str, Any] = Field(default_factory=dict)
    data: Any = Field(default=None)
    timeout: Optional[float] = Field(default=None, gt=0, description="Timeout in seconds")
    base_url: Optional[str] = Field(default=None)
    response_type: ResponseType = Field(default=ResponseType.JSON)
    signal: Optional[AbortSignal] = Field(default=None, exclude=True)

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.upper()
        return value

    @field_validator("params", mode="before")
    @classmethod
    def default_params(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("headers", mode="before")
    @classmethod
    def default_headers(cls, value: Any) -> Any:
        return {} if value is None else value

    def explicit_fields(self) -> Dict[str, Any]:
        """Fields set by the caller, plus extension fields, without serializing values."""
        fields = {name: getattr(self, name) for name in self.model_fields_set}
        fields.update(self.model_extra or {})
        return fields


ConfigLike = Union[RequestConfig, Mapping[str, Any]]


def merge_request_config(defaults: Optional[Mapping[str, Any]], config: ConfigLike) -> RequestConfig:
    """Merge default request options under an explicit config.

    Explicit values win; header maps are merged key by key.
    """
    explicit = config.explicit_fields() if isinstance(config, RequestConfig) else dict(config)
    base = dict(defaults or {})
    merged = {**base, **explicit}
    merged["headers"] = {**(base.get("headers") or {}), **(explicit.get("headers") or {})}
    return RequestConfig(**merged)
