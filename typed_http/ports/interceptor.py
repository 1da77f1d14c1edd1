"""Interceptor port definitions."""

from __future__ import annotations

from typing import Protocol

from typed_http.ports.http import TransportRequest, TransportResponse

__all__ = ["RequestInterceptor", "ResponseInterceptor"]


class RequestInterceptor(Protocol):
    """Mutation step applied to the transport request before it is sent.

    Interceptors run in registration order and cannot abort the chain.
    """

    async def intercept(self, request: TransportRequest, /) -> None: ...


class ResponseInterceptor(Protocol):
    """Step applied to a successful response before decoding.

    Returning a response replaces the current one; returning None keeps it.
    """

    async def intercept(self, response: TransportResponse, /) -> TransportResponse | None: ...
