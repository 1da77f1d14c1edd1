"""Network logger port definition."""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from typed_http.ports.http import TransportRequest, TransportResponse

__all__ = ["LogLevel", "NetworkLoggerPort"]


class LogLevel(str, Enum):
    """How much of each exchange to record."""

    NONE = "none"
    MINIMAL = "minimal"
    VERBOSE = "verbose"


class NetworkLoggerPort(Protocol):
    """Interface for human-readable request/response traces.

    Implementations must never raise: logging is not allowed to break
    the pipeline.
    """

    def log_request(self, request: TransportRequest, /) -> None: ...

    def log_response(self, response: TransportResponse, body: bytes | None = None, /) -> None: ...

    def log_error(self, error: BaseException, request: TransportRequest, /) -> None: ...
