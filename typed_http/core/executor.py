"""Request execution pipeline: build, intercept, attempt, validate, decode."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any, TypeVar

from typed_http.core.interceptors import apply_request_interceptors, apply_response_interceptors
from typed_http.core.request_builder import RequestBuilder
from typed_http.core.retry_policy import RetryPolicy
from typed_http.ports.codec import CodecPort
from typed_http.ports.errors import (
    DecodingError,
    HttpError,
    MaxRetriesExceededError,
    NetworkError,
    TransportError,
)
from typed_http.ports.http import HttpMethod, Request, TransportRequest, TransportResponse
from typed_http.ports.interceptor import RequestInterceptor, ResponseInterceptor
from typed_http.ports.logger import NetworkLoggerPort
from typed_http.ports.metrics import MetricsPort
from typed_http.ports.transport import TransportPort

__all__ = ["Executor"]

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SINGLE_ATTEMPT = RetryPolicy.none()


class Executor:
    """Runs logical requests end-to-end.

    Per call:
    1. Build the transport request (construction errors are never retried).
    2. Apply request interceptors in order.
    3. Log the final request and start its metrics.
    4. Attempt loop driven by the retry policy.
    5. Validate the status, apply response interceptors, decode.

    All per-call state lives on the stack; the metrics collector is the
    only collaborator shared between concurrent calls.
    """

    def __init__(
        self,
        transport: TransportPort,
        codec: CodecPort,
        *,
        retry_policy: RetryPolicy | None = None,
        interceptors: Iterable[RequestInterceptor] = (),
        response_interceptors: Iterable[ResponseInterceptor] = (),
        network_logger: NetworkLoggerPort | None = None,
        metrics: MetricsPort | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            transport: Sends individual attempts.
            codec: Encodes request bodies and decodes responses.
            retry_policy: Retry configuration; None means a single attempt.
            interceptors: Request mutators, applied in this order.
            response_interceptors: Applied to 2xx responses before decoding.
            network_logger: Optional request/response tracer.
            metrics: Optional per-request timing collector.
        """
        self.transport = transport
        self.codec = codec
        self.retry_policy = retry_policy
        self.interceptors = tuple(interceptors)
        self.response_interceptors = tuple(response_interceptors)
        self.network_logger = network_logger
        self.metrics = metrics
        self.builder = RequestBuilder(codec)

    async def execute(
        self,
        method: HttpMethod | str,
        url: str,
        response_type: type[T],
        *,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        query: Mapping[str, Any] | None = None,
    ) -> T:
        """Send a request and decode the response into ``response_type``.

        Raises:
            InvalidURLError: URL is malformed.
            EncodingError: Body cannot be encoded.
            TransportError: Last attempt failed below the HTTP layer.
            HttpError: Last attempt returned a non-2xx status.
            DecodingError: 2xx payload does not match ``response_type``.
            MaxRetriesExceededError: Attempts ran out without a result.
        """
        request = Request(
            method=HttpMethod.parse(method),
            url=url,
            headers=dict(headers or {}),
            body=body,
            query=query,
        )
        return await self.send(request, response_type)

    async def send(self, request: Request, response_type: type[T]) -> T:
        """Same as :meth:`execute`, for a prepared Request value."""
        transport_request = await self._prepare(request)
        with self._tracked(transport_request):
            response = await self._perform(transport_request)
            response = await apply_response_interceptors(self.response_interceptors, response)
            return self._decode(response, response_type, transport_request)

    async def execute_raw(
        self,
        method: HttpMethod | str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        query: Mapping[str, Any] | None = None,
    ) -> TransportResponse:
        """Send a request and return the validated 2xx response undecoded."""
        request = Request(
            method=HttpMethod.parse(method),
            url=url,
            headers=dict(headers or {}),
            body=body,
            query=query,
        )
        return await self.send_raw(request)

    async def send_raw(self, request: Request) -> TransportResponse:
        """Same as :meth:`execute_raw`, for a prepared Request value."""
        transport_request = await self._prepare(request)
        with self._tracked(transport_request):
            response = await self._perform(transport_request)
            return await apply_response_interceptors(self.response_interceptors, response)

    async def get(self, url: str, response_type: type[T], **kwargs: Any) -> T:
        return await self.execute(HttpMethod.GET, url, response_type, **kwargs)

    async def post(self, url: str, response_type: type[T], **kwargs: Any) -> T:
        return await self.execute(HttpMethod.POST, url, response_type, **kwargs)

    async def put(self, url: str, response_type: type[T], **kwargs: Any) -> T:
        return await self.execute(HttpMethod.PUT, url, response_type, **kwargs)

    async def patch(self, url: str, response_type: type[T], **kwargs: Any) -> T:
        return await self.execute(HttpMethod.PATCH, url, response_type, **kwargs)

    async def delete(self, url: str, response_type: type[T], **kwargs: Any) -> T:
        return await self.execute(HttpMethod.DELETE, url, response_type, **kwargs)

    async def _prepare(self, request: Request) -> TransportRequest:
        transport_request = self.builder.build_from(request)
        return await apply_request_interceptors(self.interceptors, transport_request)

    @contextmanager
    def _tracked(self, request: TransportRequest) -> Iterator[None]:
        """Log the final request and time it until the call completes.

        Metrics are finalized on every exit path, cancellation included,
        so no entry is left behind in the collector.
        """
        if self.network_logger is not None:
            self.network_logger.log_request(request)
        if self.metrics is not None:
            self.metrics.record_start(request.request_id)
        try:
            yield
        finally:
            if self.metrics is not None:
                finished = self.metrics.record_end(request.request_id)
                if finished is not None:
                    logger.debug(
                        f"{request.method.value} {request.url} took {finished.total_duration:.3f}s "
                        f"(request {finished.request_duration:.3f}s)"
                    )

    async def _perform(self, request: TransportRequest) -> TransportResponse:
        """Attempt loop.

        Returns:
            First 2xx response.

        Raises:
            TransportError | HttpError: Last failure when the policy stops
                retrying or attempts run out.
        """
        policy = self.retry_policy or _SINGLE_ATTEMPT
        last_error: NetworkError | None = None

        for attempt in range(1, policy.max_attempts + 1):
            try:
                response = await self.transport.send(request)
            except TransportError as e:
                last_error = e
                self._log_error(e, request)
                if not policy.allows_retry(attempt, None, e):
                    raise
                await self._backoff(policy, attempt, request, e)
                continue

            if self.metrics is not None:
                self.metrics.record_response(request.request_id)
            if self.network_logger is not None:
                self.network_logger.log_response(response, response.body)

            if response.ok:
                return response

            error = HttpError(response.status, response.body)
            last_error = error
            self._log_error(error, request)
            if not policy.allows_retry(attempt, response.status, None):
                raise error
            await self._backoff(policy, attempt, request, error)

        raise MaxRetriesExceededError(policy.max_attempts, last_error) from last_error

    async def _backoff(
        self,
        policy: RetryPolicy,
        attempt: int,
        request: TransportRequest,
        error: NetworkError,
    ) -> None:
        delay = policy.delay_for(attempt)
        logger.warning(
            f"Request {request.method.value} {request.url} failed with {error}, "
            f"retrying in {delay}s (attempt {attempt}/{policy.max_attempts})"
        )
        await asyncio.sleep(delay)

    def _decode(self, response: TransportResponse, response_type: type[T], request: TransportRequest) -> T:
        try:
            return self.codec.decode(response.body, response_type)
        except DecodingError as e:
            self._log_error(e, request)
            raise
        except Exception as e:
            error = DecodingError(f"Cannot decode response as {response_type!r}: {e}")
            self._log_error(error, request)
            raise error from e

    def _log_error(self, error: BaseException, request: TransportRequest) -> None:
        if self.network_logger is not None:
            self.network_logger.log_error(error, request)
