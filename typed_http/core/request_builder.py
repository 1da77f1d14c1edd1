"""Assembly of transport requests from caller input."""

from __future__ import annotations

import datetime
import logging
import re
import uuid
from collections.abc import Mapping
from decimal import Decimal
from enum import Enum
from pathlib import PurePath
from typing import Annotated, Any

from multidict import CIMultiDict
from pydantic import AnyUrl, TypeAdapter, UrlConstraints, ValidationError
from yarl import URL

from typed_http.ports.codec import CodecPort
from typed_http.ports.errors import EncodingError, InvalidURLError
from typed_http.ports.http import HttpMethod, Request, TransportRequest

__all__ = ["RequestBuilder", "parse_url", "stringify_query_value"]

logger = logging.getLogger(__name__)

# No length cap: HttpUrl stops at 2083 characters.
_http_url_adapter = TypeAdapter(
    Annotated[AnyUrl, UrlConstraints(allowed_schemes=["http", "https"], host_required=True)]
)

# Whitespace and control characters must be percent-encoded by the caller.
_UNENCODED_CHARS = re.compile(r"[\s\x00-\x1f\x7f]")

CONTENT_TYPE = "Content-Type"


def parse_url(url: str) -> URL:
    """Validate an absolute http(s) URL.

    Args:
        url: URL string as given by the caller.

    Returns:
        Parsed URL.

    Raises:
        InvalidURLError: If the string is empty, contains unencoded
            whitespace/control characters, or is not an absolute http(s) URL.
    """
    if not isinstance(url, str) or not url:
        raise InvalidURLError(str(url), "empty URL")
    if _UNENCODED_CHARS.search(url):
        raise InvalidURLError(url, "contains unencoded whitespace or control characters")
    try:
        _http_url_adapter.validate_python(url)
    except ValidationError as e:
        raise InvalidURLError(url, e.errors()[0]["msg"]) from e
    return URL(url)


def stringify_query_value(value: Any) -> str | None:
    """Return the canonical string form of a scalar query value.

    Returns:
        The string form, or None when the value has no canonical scalar
        representation (None, containers, bytes, arbitrary objects).
    """
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return stringify_query_value(value.value)
    if isinstance(value, str):
        return value
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, (int, float, Decimal, uuid.UUID, PurePath)):
        return str(value)
    return None


class RequestBuilder:
    """Turns caller input into a fresh TransportRequest.

    Construction failures (bad URL, unencodable body) are raised here and
    never reach the attempt loop.
    """

    def __init__(self, codec: CodecPort) -> None:
        self.codec = codec

    def build(
        self,
        method: HttpMethod | str,
        url: str,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        query: Mapping[str, Any] | None = None,
    ) -> TransportRequest:
        """Build a transport request.

        Args:
            method: HTTP method.
            url: Absolute target URL.
            headers: Headers applied verbatim, one per entry.
            body: Optional value encoded through the codec.
            query: Optional parameters appended to the URL's query.

        Returns:
            New TransportRequest owned by the caller.

        Raises:
            InvalidURLError: If the URL is malformed.
            EncodingError: If the body cannot be encoded.
            ValueError: If the method is not supported.
        """
        http_method = HttpMethod.parse(method)
        target = parse_url(url)

        if query:
            target = target.extend_query(self._query_items(query))

        request = TransportRequest(method=http_method, url=target, headers=CIMultiDict())
        for name, value in (headers or {}).items():
            request.headers[name] = value

        if body is not None:
            try:
                request.body = self.codec.encode(body)
            except EncodingError:
                raise
            except Exception as e:
                raise EncodingError(f"Cannot encode request body: {e}") from e
            if CONTENT_TYPE not in request.headers:
                request.headers[CONTENT_TYPE] = self.codec.content_type

        return request

    def build_from(self, request: Request) -> TransportRequest:
        """Build a transport request from a Request value."""
        return self.build(
            method=request.method,
            url=request.url,
            headers=request.headers,
            body=request.body,
            query=request.query,
        )

    @staticmethod
    def _query_items(query: Mapping[str, Any]) -> list[tuple[str, str]]:
        items: list[tuple[str, str]] = []
        for name, value in query.items():
            text = stringify_query_value(value)
            if text is None:
                logger.debug(f"Skipping query parameter {name!r}: {type(value).__name__} is not a scalar")
                continue
            items.append((name, text))
        return items
