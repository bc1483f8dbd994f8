from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class RequestMode(str, Enum):
    GET = "get"
    POST = "post"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            return cls.__members__.get(value.upper())
        return None


class QueryParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    params: Optional[str] = None


class RequestContext(BaseModel):
    """Read-only view of an inbound request, as handed over by the route layer."""

    model_config = ConfigDict(frozen=True)

    cookies: Dict[str, str] = Field(default_factory=dict)
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Any] = None
    query: Optional[QueryParams] = None


class GraphQLResponse(BaseModel):
    """Uniform envelope returned for every upstream call.

    ``code`` is 0 when a response body was obtained and -1 on failure.
    """

    code: int
    data: Optional[Any] = None
    statusCode: Optional[int] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.code == 0

    def to_payload(self) -> Dict[str, Any]:
        """Envelope as sent to the caller, without unset top-level fields."""
        return {k: v for k, v in self.model_dump().items() if v is not None}
