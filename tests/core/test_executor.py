"""Tests for the request execution pipeline."""

import asyncio
from unittest.mock import AsyncMock, Mock, call, patch

import pytest
from pydantic import BaseModel

from typed_http.adapters.driven.codec.json_codec import PydanticJsonCodec
from typed_http.adapters.driven.metrics.request_metrics import MetricsCollector
from typed_http.core.executor import Executor
from typed_http.core.interceptors import HeaderInterceptor
from typed_http.core.retry_policy import RetryPolicy
from typed_http.ports.errors import (
    DecodingError,
    EncodingError,
    HttpError,
    InvalidURLError,
    MaxRetriesExceededError,
    TransportError,
)
from typed_http.ports.http import HttpMethod, Request, TransportRequest, TransportResponse

__all__ = []

USER_JSON = b'{"id":1,"name":"Ada","email":"a@x.com"}'


class User(BaseModel):
    id: int
    name: str
    email: str


class ScriptedTransport:
    """Transport returning scripted outcomes; the last one repeats forever."""

    def __init__(self, *outcomes: TransportResponse | BaseException) -> None:
        self.outcomes = list(outcomes)
        self.sent: list[TransportRequest] = []

    async def send(self, request: TransportRequest) -> TransportResponse:
        self.sent.append(request)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def ok(body: bytes = USER_JSON) -> TransportResponse:
    return TransportResponse(status=200, body=body)


def make_executor(transport: ScriptedTransport, **kwargs) -> Executor:
    return Executor(transport, PydanticJsonCodec(), **kwargs)


@pytest.mark.asyncio
async def test_get_decodes_user() -> None:
    """A 200 JSON response should decode into the requested model."""
    transport = ScriptedTransport(ok())
    executor = make_executor(transport)

    user = await executor.execute(HttpMethod.GET, "https://api.example.com/users/1", User)

    assert user == User(id=1, name="Ada", email="a@x.com")
    assert transport.sent[0].method is HttpMethod.GET
    assert str(transport.sent[0].url) == "https://api.example.com/users/1"


@pytest.mark.asyncio
async def test_successful_first_attempt_is_never_retried() -> None:
    """A 2xx first attempt should send exactly once, even with retries configured."""
    transport = ScriptedTransport(ok())
    executor = make_executor(transport, retry_policy=RetryPolicy.exponential(max_attempts=3))
    mock_sleep = AsyncMock()

    with patch("typed_http.core.executor.asyncio.sleep", mock_sleep):
        await executor.get("https://api.example.com/users/1", User)

    assert len(transport.sent) == 1
    mock_sleep.assert_not_called()


@pytest.mark.asyncio
async def test_server_errors_exhaust_attempts_with_backoff() -> None:
    """Persistent 500s should use every attempt and surface the last HttpError."""
    transport = ScriptedTransport(TransportResponse(status=500, body=b"oops"))
    executor = make_executor(transport, retry_policy=RetryPolicy.exponential(max_attempts=3))
    mock_sleep = AsyncMock()

    with (
        patch("typed_http.core.executor.asyncio.sleep", mock_sleep),
        pytest.raises(HttpError) as exc_info,
    ):
        await executor.get("https://api.example.com/users/1", User)

    assert exc_info.value.status_code == 500
    assert exc_info.value.body == b"oops"
    assert len(transport.sent) == 3
    assert mock_sleep.await_args_list == [call(0.5), call(1.0)]


@pytest.mark.asyncio
async def test_recovers_after_transient_server_error() -> None:
    """A 503 followed by a 200 should succeed on the second attempt."""
    transport = ScriptedTransport(TransportResponse(status=503), ok())
    executor = make_executor(transport, retry_policy=RetryPolicy.exponential(max_attempts=3))

    with patch("typed_http.core.executor.asyncio.sleep", new=AsyncMock()):
        user = await executor.get("https://api.example.com/users/1", User)

    assert user.name == "Ada"
    assert len(transport.sent) == 2


@pytest.mark.asyncio
async def test_transport_errors_are_retried_then_surfaced() -> None:
    """Persistent transport failures should surface the last TransportError."""
    transport = ScriptedTransport(TransportError("connection refused"))
    executor = make_executor(transport, retry_policy=RetryPolicy.exponential(max_attempts=3))

    with (
        patch("typed_http.core.executor.asyncio.sleep", new=AsyncMock()),
        pytest.raises(TransportError, match="connection refused"),
    ):
        await executor.get("https://api.example.com/users/1", User)

    assert len(transport.sent) == 3


@pytest.mark.asyncio
async def test_transport_error_then_success() -> None:
    """A transient transport error should be retried."""
    transport = ScriptedTransport(TransportError("reset"), ok())
    executor = make_executor(transport, retry_policy=RetryPolicy.exponential(max_attempts=2))

    with patch("typed_http.core.executor.asyncio.sleep", new=AsyncMock()):
        user = await executor.get("https://api.example.com/users/1", User)

    assert user.id == 1
    assert len(transport.sent) == 2


@pytest.mark.asyncio
async def test_client_error_is_not_retried() -> None:
    """A 404 should fail immediately under the default policy."""
    transport = ScriptedTransport(TransportResponse(status=404))
    executor = make_executor(transport, retry_policy=RetryPolicy.exponential(max_attempts=3))
    mock_sleep = AsyncMock()

    with (
        patch("typed_http.core.executor.asyncio.sleep", mock_sleep),
        pytest.raises(HttpError) as exc_info,
    ):
        await executor.get("https://api.example.com/users/404", User)

    assert exc_info.value.status_code == 404
    assert exc_info.value.is_client_error
    assert len(transport.sent) == 1
    mock_sleep.assert_not_called()


@pytest.mark.asyncio
async def test_without_policy_a_single_attempt_is_made() -> None:
    """No retry policy means one attempt, even for retryable outcomes."""
    transport = ScriptedTransport(TransportResponse(status=503))
    executor = make_executor(transport)

    with pytest.raises(HttpError):
        await executor.get("https://api.example.com/users/1", User)

    assert len(transport.sent) == 1


@pytest.mark.asyncio
async def test_malformed_body_is_never_retried() -> None:
    """A 200 with malformed JSON should raise DecodingError after one send."""
    transport = ScriptedTransport(ok(b"{not json"))
    executor = make_executor(transport, retry_policy=RetryPolicy.fixed(max_attempts=3, delay=0))

    with pytest.raises(DecodingError):
        await executor.get("https://api.example.com/users/1", User)

    assert len(transport.sent) == 1


@pytest.mark.asyncio
async def test_codec_crash_during_decode_becomes_decoding_error() -> None:
    """Unexpected codec exceptions should still surface as DecodingError."""
    codec = Mock()
    codec.decode.side_effect = RuntimeError("boom")
    executor = Executor(ScriptedTransport(ok()), codec)

    with pytest.raises(DecodingError, match="boom"):
        await executor.get("https://api.example.com/users/1", User)


@pytest.mark.asyncio
async def test_invalid_url_fails_before_any_io() -> None:
    """Construction errors should not reach the transport, logger or metrics."""
    transport = ScriptedTransport(ok())
    network_logger = Mock()
    metrics = Mock()
    executor = make_executor(
        transport,
        retry_policy=RetryPolicy.exponential(3),
        network_logger=network_logger,
        metrics=metrics,
    )

    with pytest.raises(InvalidURLError):
        await executor.get("invalid url with spaces", User)

    assert transport.sent == []
    network_logger.log_request.assert_not_called()
    metrics.record_start.assert_not_called()


@pytest.mark.asyncio
async def test_encoding_error_fails_before_any_io() -> None:
    """An unencodable body should never be sent or retried."""
    transport = ScriptedTransport(ok())
    executor = make_executor(transport, retry_policy=RetryPolicy.exponential(3))

    with pytest.raises(EncodingError):
        await executor.post("https://api.example.com/users", User, body={"x": object()})

    assert transport.sent == []


@pytest.mark.asyncio
async def test_interceptors_shape_the_sent_logged_and_measured_request() -> None:
    """Logs and metrics should see the final, intercepted request."""
    transport = ScriptedTransport(ok())
    network_logger = Mock()
    metrics = Mock()
    metrics.record_end.return_value = None
    executor = make_executor(
        transport,
        interceptors=[HeaderInterceptor({"Authorization": "Bearer a"}), HeaderInterceptor({"X-Step": "2"})],
        network_logger=network_logger,
        metrics=metrics,
    )

    await executor.get("https://api.example.com/users/1", User)

    sent = transport.sent[0]
    assert sent.headers["Authorization"] == "Bearer a"
    assert sent.headers["X-Step"] == "2"
    logged = network_logger.log_request.call_args[0][0]
    assert logged is sent
    metrics.record_start.assert_called_once_with(sent.request_id)
    metrics.record_end.assert_called_once_with(sent.request_id)


@pytest.mark.asyncio
async def test_send_does_not_mutate_caller_request() -> None:
    """Interceptors mutate the transport request, never the Request value."""
    transport = ScriptedTransport(ok())
    executor = make_executor(transport, interceptors=[HeaderInterceptor({"X-Added": "yes"})])
    headers = {"Accept": "application/json"}
    request = Request(method=HttpMethod.GET, url="https://api.example.com/users/1", headers=headers)

    await executor.send(request, User)

    assert headers == {"Accept": "application/json"}
    assert request.headers == {"Accept": "application/json"}


@pytest.mark.asyncio
async def test_post_encodes_body_and_query() -> None:
    """post() should send the encoded body, JSON content type and query."""
    transport = ScriptedTransport(TransportResponse(status=201, body=USER_JSON))
    executor = make_executor(transport)

    user = await executor.post(
        "https://api.example.com/users",
        User,
        body={"name": "Ada"},
        query={"notify": False},
    )

    sent = transport.sent[0]
    assert user.id == 1
    assert sent.method is HttpMethod.POST
    assert sent.body == b'{"name":"Ada"}'
    assert sent.headers["Content-Type"] == "application/json"
    assert sent.url.query["notify"] == "false"


@pytest.mark.asyncio
async def test_delete_with_empty_body_decodes_none() -> None:
    """A 204 without payload should decode to None."""
    transport = ScriptedTransport(TransportResponse(status=204, body=b""))
    executor = make_executor(transport)

    result = await executor.delete("https://api.example.com/users/1", type(None))

    assert result is None


@pytest.mark.asyncio
async def test_execute_raw_returns_validated_response() -> None:
    """execute_raw() should skip decoding but still validate the status."""
    transport = ScriptedTransport(ok(b"not json at all"))
    executor = make_executor(transport)

    response = await executor.execute_raw("GET", "https://api.example.com/export")

    assert response.status == 200
    assert response.body == b"not json at all"


@pytest.mark.asyncio
async def test_execute_raw_raises_http_error() -> None:
    """execute_raw() should still reject non-2xx statuses."""
    executor = make_executor(ScriptedTransport(TransportResponse(status=401)))

    with pytest.raises(HttpError) as exc_info:
        await executor.execute_raw(HttpMethod.GET, "https://api.example.com/export")

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_response_interceptors_run_before_decoding() -> None:
    """Response interceptors should be able to rewrite a 2xx payload."""
    unwrap = AsyncMock()
    unwrap.intercept = AsyncMock(return_value=ok())
    transport = ScriptedTransport(ok(b'{"data": {"id": 1}}'))
    executor = make_executor(transport, response_interceptors=[unwrap])

    user = await executor.get("https://api.example.com/users/1", User)

    assert user.name == "Ada"
    unwrap.intercept.assert_awaited_once()


@pytest.mark.asyncio
async def test_response_interceptors_skip_failed_responses() -> None:
    """Response interceptors should not see non-2xx responses."""
    interceptor = AsyncMock()
    interceptor.intercept = AsyncMock(return_value=None)
    executor = make_executor(
        ScriptedTransport(TransportResponse(status=500)),
        response_interceptors=[interceptor],
    )

    with pytest.raises(HttpError):
        await executor.get("https://api.example.com/users/1", User)

    interceptor.intercept.assert_not_called()


@pytest.mark.asyncio
async def test_custom_predicate_receives_attempt_status_and_error() -> None:
    """The retry predicate should get 1-based attempts and the outcome."""
    predicate = Mock(return_value=True)
    policy = RetryPolicy(max_attempts=3, delay=lambda n: 0.0, should_retry=predicate)
    transport = ScriptedTransport(TransportResponse(status=503), TransportError("reset"), ok())
    executor = make_executor(transport, retry_policy=policy)

    with patch("typed_http.core.executor.asyncio.sleep", new=AsyncMock()):
        await executor.get("https://api.example.com/users/1", User)

    first, second = predicate.call_args_list
    assert first.args[:2] == (1, 503)
    assert first.args[2] is None
    assert second.args[0] == 2
    assert second.args[1] is None
    assert isinstance(second.args[2], TransportError)


@pytest.mark.asyncio
async def test_exhaustion_without_terminal_result_wraps_last_error() -> None:
    """If the loop runs out while the policy keeps asking to retry, wrap the last error."""
    policy = Mock()
    policy.max_attempts = 2
    policy.allows_retry.return_value = True
    policy.delay_for.return_value = 0.0
    transport = ScriptedTransport(TransportResponse(status=502))
    executor = make_executor(transport, retry_policy=policy)

    with (
        patch("typed_http.core.executor.asyncio.sleep", new=AsyncMock()),
        pytest.raises(MaxRetriesExceededError) as exc_info,
    ):
        await executor.get("https://api.example.com/users/1", User)

    assert exc_info.value.attempts == 2
    assert isinstance(exc_info.value.last_error, HttpError)
    assert exc_info.value.__cause__ is exc_info.value.last_error
    assert len(transport.sent) == 2


@pytest.mark.asyncio
async def test_logger_sees_every_attempt() -> None:
    """Each failed attempt should be logged as an error, success as a response."""
    network_logger = Mock()
    transport = ScriptedTransport(TransportError("dns"), TransportResponse(status=500), ok())
    executor = make_executor(
        transport,
        retry_policy=RetryPolicy.exponential(3),
        network_logger=network_logger,
    )

    with patch("typed_http.core.executor.asyncio.sleep", new=AsyncMock()):
        await executor.get("https://api.example.com/users/1", User)

    network_logger.log_request.assert_called_once()
    errors = [c.args[0] for c in network_logger.log_error.call_args_list]
    assert isinstance(errors[0], TransportError)
    assert isinstance(errors[1], HttpError)
    assert network_logger.log_response.call_count == 2


@pytest.mark.asyncio
async def test_metrics_are_finalized_on_failure() -> None:
    """A failed call should leave no in-flight metrics behind."""
    metrics = MetricsCollector()
    executor = make_executor(ScriptedTransport(TransportResponse(status=404)), metrics=metrics)

    with pytest.raises(HttpError):
        await executor.get("https://api.example.com/users/1", User)

    assert metrics.in_flight == 0
    assert "total=1" in str(metrics)


@pytest.mark.asyncio
async def test_cancellation_during_backoff_stops_retrying() -> None:
    """Cancelling the caller while it sleeps should unwind without new attempts."""
    first_attempt_done = asyncio.Event()

    class SignallingTransport(ScriptedTransport):
        async def send(self, request: TransportRequest) -> TransportResponse:
            response = await super().send(request)
            first_attempt_done.set()
            return response

    transport = SignallingTransport(TransportResponse(status=503))
    metrics = MetricsCollector()
    executor = make_executor(
        transport,
        retry_policy=RetryPolicy.exponential(max_attempts=5, base_delay=60),
        metrics=metrics,
    )

    task = asyncio.create_task(executor.get("https://api.example.com/users/1", User))
    await first_attempt_done.wait()
    await asyncio.sleep(0)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert len(transport.sent) == 1
    assert metrics.in_flight == 0


@pytest.mark.asyncio
async def test_concurrent_requests_share_metrics_safely() -> None:
    """Concurrent calls should each produce exactly one finalized record."""

    class YieldingTransport(ScriptedTransport):
        async def send(self, request: TransportRequest) -> TransportResponse:
            await asyncio.sleep(0)
            return await super().send(request)

    transport = YieldingTransport(ok())
    metrics = MetricsCollector()
    executor = make_executor(transport, metrics=metrics)

    users = await asyncio.gather(
        *(executor.get(f"https://api.example.com/users/{n}", User) for n in range(25))
    )

    assert len(users) == 25
    assert len({r.request_id for r in transport.sent}) == 25
    assert metrics.in_flight == 0
    assert "total=25" in str(metrics)
