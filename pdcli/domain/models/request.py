"""Request Descriptor value object.

A descriptor is one planned HTTP call (method, path, params, body) before
execution. Its identity is its position in the batch, so descriptors are
immutable and carry no index themselves.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from pdcli.domain.models.common import Endpoint


class HttpMethod(str, Enum):
    """HTTP methods the batch executor is allowed to issue."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


@dataclass(frozen=True)
class RequestDescriptor:
    """One unit of work for the batch executor."""
    endpoint: Endpoint
    method: HttpMethod = HttpMethod.GET
    params: Mapping[str, str] = field(default_factory=dict)
    body: Optional[Any] = None

    def __post_init__(self) -> None:
        if not isinstance(self.endpoint, str) or not self.endpoint.strip():
            raise ValueError("Request endpoint must be a non-empty string.")
        try:
            method = HttpMethod(str(getattr(self.method, "value", self.method)).upper())
        except ValueError:
            allowed = ", ".join(m.value for m in HttpMethod)
            raise ValueError(f"Unsupported HTTP method '{self.method}'. Expected one of: {allowed}") from None
        params = dict(self.params or {})
        for key, value in params.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise ValueError(f"Query parameters must map str to str, got {key!r}: {value!r}")
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "params", MappingProxyType(params))

    @classmethod
    def put(cls, endpoint: str, body: Any) -> "RequestDescriptor":
        return cls(endpoint=Endpoint(endpoint), method=HttpMethod.PUT, body=body)

    @classmethod
    def get(cls, endpoint: str, params: Optional[Mapping[str, str]] = None) -> "RequestDescriptor":
        return cls(endpoint=Endpoint(endpoint), method=HttpMethod.GET, params=params or {})
