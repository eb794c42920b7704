from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

from request_middleware.core.request import RequestConfig


class ResponseData(BaseModel):
    """A decoded response, always linked to the request config that produced it."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: int = Field()
    status_text: str = Field(default="")
    data: Any = Field(default=None)
    headers: Dict[str, str] = Field(default_factory=dict)
    config: RequestConfig = Field()

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300
