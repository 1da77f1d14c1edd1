"""Metrics port definition (interface and DTO)."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

__all__ = ["RequestMetrics", "MetricsPort"]


@dataclass(slots=True, frozen=True)
class RequestMetrics:
    """Timing snapshot of one logical request.

    Unset end times are replaced by the current clock reading, so an
    in-flight snapshot reports elapsed-so-far.

    Attributes:
        request_id: Key the request was recorded under.
        request_start_time: Clock reading when the request started.
        request_end_time: Clock reading when the last attempt got a response.
        response_start_time: Clock reading when response handling began.
        response_end_time: Clock reading when the request was finalized.
        clock: Clock used for the readings above.
    """

    request_id: str
    request_start_time: float
    request_end_time: float | None = None
    response_start_time: float | None = None
    response_end_time: float | None = None
    clock: Callable[[], float] = field(default=time.monotonic, repr=False, compare=False)

    @property
    def total_duration(self) -> float:
        end = self.response_end_time if self.response_end_time is not None else self.clock()
        return end - self.request_start_time

    @property
    def request_duration(self) -> float:
        end = self.request_end_time if self.request_end_time is not None else self.clock()
        return end - self.request_start_time

    @property
    def response_duration(self) -> float | None:
        if self.response_start_time is None:
            return None
        end = self.response_end_time if self.response_end_time is not None else self.clock()
        return end - self.response_start_time

    @property
    def is_finalized(self) -> bool:
        return self.response_end_time is not None


class MetricsPort(Protocol):
    """Interface for recording per-request timings.

    Implementations must be safe for concurrent use by many in-flight
    requests, each with a distinct key.
    """

    def record_start(self, key: str, /) -> None:
        """Start timing the request identified by ``key``."""
        ...

    def record_response(self, key: str, /) -> None:
        """Mark the end of the request phase for ``key``."""
        ...

    def record_end(self, key: str, /) -> RequestMetrics | None:
        """Finalize and forget ``key``.

        Returns:
            Finalized metrics, or None if the key is unknown.
        """
        ...
