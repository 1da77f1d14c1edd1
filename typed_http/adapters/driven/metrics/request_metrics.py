"""In-memory, lock-protected per-request timing collector."""

from __future__ import annotations

import statistics
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from typed_http.ports.metrics import MetricsPort, RequestMetrics

__all__ = ["MetricsCollector"]


@dataclass(slots=True)
class _Entry:
    """Internal record for one in-flight request."""

    start: float
    request_end: float | None = None
    response_start: float | None = None


class MetricsCollector(MetricsPort):
    """Concurrency-safe metrics for in-flight requests.

    Tracks:
    - Start, request-phase end and completion time per request key.
    - Total duration of recently completed requests (sliding window).
    - Total requests finalized.

    Every access to the internal map happens under one lock, so concurrent
    tasks (or threads) can start and finish requests with distinct keys
    without lost updates. Critical sections never await.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        window_size: int = 100,
    ) -> None:
        """Initialize metrics collector.

        Args:
            clock: Monotonic clock returning seconds.
            window_size: Number of completed requests kept for statistics.
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._active: dict[str, _Entry] = {}
        self._window: deque[float] = deque(maxlen=window_size)
        self._total_seen: int = 0

    def record_start(self, key: str) -> None:
        """Start timing ``key``; a repeated start restarts the timer."""
        now = self._clock()
        with self._lock:
            self._active[key] = _Entry(start=now)

    def record_response(self, key: str) -> None:
        """Mark the request phase of ``key`` as done. Unknown keys are ignored."""
        now = self._clock()
        with self._lock:
            entry = self._active.get(key)
            if entry is not None:
                entry.request_end = now
                entry.response_start = now

    def record_end(self, key: str) -> RequestMetrics | None:
        """Finalize ``key`` and drop it from the collector.

        Returns:
            Finalized metrics, or None when the key is unknown (for example
            already collected).
        """
        now = self._clock()
        with self._lock:
            entry = self._active.pop(key, None)
            if entry is None:
                return None
            metrics = RequestMetrics(
                request_id=key,
                request_start_time=entry.start,
                request_end_time=entry.request_end if entry.request_end is not None else now,
                response_start_time=entry.response_start,
                response_end_time=now,
                clock=self._clock,
            )
            self._window.append(metrics.total_duration)
            self._total_seen += 1
        return metrics

    def snapshot(self, key: str) -> RequestMetrics | None:
        """In-flight view of ``key``; durations report elapsed-so-far."""
        with self._lock:
            entry = self._active.get(key)
            if entry is None:
                return None
            return RequestMetrics(
                request_id=key,
                request_start_time=entry.start,
                request_end_time=entry.request_end,
                response_start_time=entry.response_start,
                clock=self._clock,
            )

    @property
    def in_flight(self) -> int:
        with self._lock:
            return len(self._active)

    def __str__(self) -> str:
        """Return human-readable one-line summary for logging.

        Returns:
            Formatted metrics string.
        """
        with self._lock:
            durations = list(self._window)
            in_flight = len(self._active)
            total = self._total_seen

        if not durations:
            return "Metrics: waiting for data …"

        avg_ms = statistics.fmean(durations) * 1_000.0
        max_ms = max(durations) * 1_000.0
        return (
            f"avg={avg_ms:7.1f} ms | "
            f"max={max_ms:7.1f} ms | "
            f"in_flight={in_flight} | "
            f"win={len(durations)}/{self._window.maxlen} | "
            f"total={total}"
        )
