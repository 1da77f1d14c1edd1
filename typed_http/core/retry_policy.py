"""Retry decisions for the attempt loop."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from typed_http.ports.errors import TransportError

__all__ = ["RetryPolicy", "RetryDecider", "retry_on_server_or_transport_error"]

DEFAULT_BASE_DELAY_SEC = 0.5


class RetryDecider(Protocol):
    """Predicate deciding whether a failed attempt is retried."""

    def __call__(
        self,
        attempt: int,
        status: int | None,
        error: BaseException | None,
        /,
    ) -> bool: ...


def retry_on_server_or_transport_error(
    attempt: int,
    status: int | None,
    error: BaseException | None,
) -> bool:
    """Retry 5xx responses and transport-level failures, nothing else."""
    if status is not None:
        return 500 <= status <= 599
    return isinstance(error, TransportError)


@dataclass(frozen=True)
class RetryPolicy:
    """How many attempts a request gets and how long to wait between them.

    Attempts are numbered from 1. The predicate is only consulted while
    attempts remain.

    Attributes:
        max_attempts: Total attempts, including the first one.
        delay: Maps the failed attempt number to seconds to wait.
        should_retry: Decides whether a failed attempt is retried.
    """

    max_attempts: int
    delay: Callable[[int], float]
    should_retry: RetryDecider

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1 (got: {self.max_attempts})")

    @classmethod
    def exponential(
        cls,
        max_attempts: int = 3,
        base_delay: float = DEFAULT_BASE_DELAY_SEC,
    ) -> RetryPolicy:
        """Exponential backoff retrying 5xx statuses and transport errors.

        Delay sequence with the default base: 0.5, 1, 2, 4 ... seconds.
        """
        return cls(
            max_attempts=max_attempts,
            delay=lambda attempt: base_delay * 2 ** (attempt - 1),
            should_retry=retry_on_server_or_transport_error,
        )

    @classmethod
    def fixed(cls, max_attempts: int, delay: float) -> RetryPolicy:
        """Blind retry: every failure is retried after the same delay."""
        return cls(
            max_attempts=max_attempts,
            delay=lambda attempt: delay,
            should_retry=lambda attempt, status, error: True,
        )

    @classmethod
    def none(cls) -> RetryPolicy:
        """Single attempt, no retries."""
        return cls(
            max_attempts=1,
            delay=lambda attempt: 0.0,
            should_retry=lambda attempt, status, error: False,
        )

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed ``attempt`` (never negative)."""
        return max(0.0, float(self.delay(attempt)))

    def allows_retry(
        self,
        attempt: int,
        status: int | None = None,
        error: BaseException | None = None,
    ) -> bool:
        """Whether failed ``attempt`` should be followed by another one."""
        if attempt >= self.max_attempts:
            return False
        return bool(self.should_retry(attempt, status, error))
