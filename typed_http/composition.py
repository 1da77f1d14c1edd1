"""Wiring of concrete adapters into a ready-to-use Executor."""

from collections.abc import Iterable

from typed_http.adapters.driven.codec.json_codec import PydanticJsonCodec
from typed_http.adapters.driven.http.aiohttp_transport import AiohttpTransport
from typed_http.adapters.driven.logging.network_logger import NetworkLogger
from typed_http.core.executor import Executor
from typed_http.core.interceptors import DefaultHeaderInterceptor
from typed_http.core.retry_policy import RetryPolicy
from typed_http.ports.codec import CodecPort
from typed_http.ports.interceptor import RequestInterceptor, ResponseInterceptor
from typed_http.ports.logger import LogLevel
from typed_http.ports.metrics import MetricsPort
from typed_http.ports.settings import SettingsPort
from typed_http.ports.transport import TransportPort

__all__ = ["create_executor", "create_transport"]


def create_transport(settings: SettingsPort) -> AiohttpTransport:
    """Build the aiohttp transport; enter it with ``async with`` before use."""
    return AiohttpTransport(timeout_sec=settings.timeout_sec)


def create_executor(
    settings: SettingsPort,
    transport: TransportPort,
    *,
    codec: CodecPort | None = None,
    interceptors: Iterable[RequestInterceptor] = (),
    response_interceptors: Iterable[ResponseInterceptor] = (),
    metrics: MetricsPort | None = None,
) -> Executor:
    """Build an Executor from runtime settings.

    Default headers from the settings only fill headers the call did not set.
    They are applied by the first interceptor, so caller interceptors can
    still overwrite them.

    Args:
        settings: Runtime configuration.
        transport: Transport used for every attempt.
        codec: Body codec; JSON via pydantic when omitted.
        interceptors: Extra request interceptors, run after default headers.
        response_interceptors: Applied to 2xx responses before decoding.
        metrics: Optional timing collector.

    Returns:
        Configured Executor.
    """
    chain: list[RequestInterceptor] = []
    if settings.default_headers:
        chain.append(DefaultHeaderInterceptor(settings.default_headers))
    chain.extend(interceptors)

    retry_policy = None
    if settings.max_attempts > 1:
        retry_policy = RetryPolicy.exponential(
            max_attempts=settings.max_attempts,
            base_delay=settings.retry_base_delay_sec,
        )

    network_logger = None
    if settings.log_level is not LogLevel.NONE:
        network_logger = NetworkLogger(settings.log_level)

    return Executor(
        transport,
        codec or PydanticJsonCodec(),
        retry_policy=retry_policy,
        interceptors=chain,
        response_interceptors=response_interceptors,
        network_logger=network_logger,
        metrics=metrics,
    )
