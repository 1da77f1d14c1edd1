"""Interceptor chain and stock interceptors."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Iterable, Mapping

from typed_http.ports.http import TransportRequest, TransportResponse
from typed_http.ports.interceptor import RequestInterceptor, ResponseInterceptor

__all__ = [
    "apply_request_interceptors",
    "apply_response_interceptors",
    "HeaderInterceptor",
    "DefaultHeaderInterceptor",
    "BearerTokenInterceptor",
]

TokenProvider = Callable[[], str | Awaitable[str]]


async def apply_request_interceptors(
    interceptors: Iterable[RequestInterceptor],
    request: TransportRequest,
) -> TransportRequest:
    """Run request interceptors strictly in order.

    Each interceptor sees the mutations of every interceptor before it.

    Args:
        interceptors: Interceptors in registration order.
        request: Request produced by the builder; mutated in place.

    Returns:
        The same request object, after all mutations.
    """
    for interceptor in interceptors:
        await interceptor.intercept(request)
    return request


async def apply_response_interceptors(
    interceptors: Iterable[ResponseInterceptor],
    response: TransportResponse,
) -> TransportResponse:
    """Run response interceptors strictly in order.

    Args:
        interceptors: Interceptors in registration order.
        response: Successful response from the transport.

    Returns:
        The last replacement response, or the original one.
    """
    for interceptor in interceptors:
        replacement = await interceptor.intercept(response)
        if replacement is not None:
            response = replacement
    return response


class HeaderInterceptor(RequestInterceptor):
    """Sets fixed headers, overwriting existing values."""

    def __init__(self, headers: Mapping[str, str]) -> None:
        self.headers = dict(headers)

    async def intercept(self, request: TransportRequest) -> None:
        for name, value in self.headers.items():
            request.headers[name] = value


class DefaultHeaderInterceptor(RequestInterceptor):
    """Adds fallback headers; values already on the request are kept."""

    def __init__(self, headers: Mapping[str, str]) -> None:
        self.headers = dict(headers)

    async def intercept(self, request: TransportRequest) -> None:
        for name, value in self.headers.items():
            request.headers.setdefault(name, value)


class BearerTokenInterceptor(RequestInterceptor):
    """Injects ``Authorization: Bearer <token>``.

    The token provider is called for every request and may be a plain
    function or a coroutine function (e.g. one that refreshes a token).
    """

    def __init__(self, token_provider: TokenProvider) -> None:
        self.token_provider = token_provider

    async def intercept(self, request: TransportRequest) -> None:
        token = self.token_provider()
        if inspect.isawaitable(token):
            token = await token
        request.headers["Authorization"] = f"Bearer {token}"
