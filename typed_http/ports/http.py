"""HTTP port definitions (DTOs)."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from multidict import CIMultiDict
from yarl import URL

__all__ = ["HttpMethod", "Request", "TransportRequest", "TransportResponse"]


class HttpMethod(str, Enum):
    """HTTP methods supported by the pipeline."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"

    @classmethod
    def parse(cls, value: HttpMethod | str) -> HttpMethod:
        """Normalise a method name.

        Args:
            value: Enum member or case-insensitive method name.

        Returns:
            Matching HttpMethod.

        Raises:
            ValueError: If the method is not supported.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError as e:
            raise ValueError(f"Unsupported HTTP method: {value!r}") from e


@dataclass(frozen=True)
class Request:
    """Caller-supplied description of one logical request.

    The pipeline never mutates it: every call materialises a fresh
    TransportRequest from it.

    Attributes:
        method: HTTP method.
        url: Absolute target URL.
        headers: Header name to value.
        body: Optional value to encode as the request payload.
        query: Optional query parameter name to scalar value.
    """

    method: HttpMethod
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    query: Mapping[str, Any] | None = None


@dataclass
class TransportRequest:
    """Wire-ready request, mutable while interceptors run.

    Attributes:
        method: HTTP method.
        url: Fully encoded URL including query.
        headers: Case-insensitive headers, last write wins.
        body: Encoded payload, if any.
        request_id: Identity of the in-flight call, used as metrics key.
    """

    method: HttpMethod
    url: URL
    headers: CIMultiDict[str] = field(default_factory=CIMultiDict)
    body: bytes | None = None
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass(frozen=True)
class TransportResponse:
    """Raw response returned by a transport.

    Attributes:
        status: HTTP status code.
        body: Raw payload bytes.
        headers: Response headers.
        url: Final URL the response came from.
    """

    status: int
    body: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)
    url: URL | None = None

    @property
    def ok(self) -> bool:
        """True for 2xx statuses."""
        return 200 <= self.status <= 299
