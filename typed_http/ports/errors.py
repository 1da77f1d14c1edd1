"""Error taxonomy of the request pipeline."""

from __future__ import annotations

__all__ = [
    "NetworkError",
    "InvalidURLError",
    "EncodingError",
    "TransportError",
    "HttpError",
    "DecodingError",
    "MaxRetriesExceededError",
]


class NetworkError(Exception):
    """Base for every failure surfaced by the pipeline."""


class InvalidURLError(NetworkError):
    """URL is not a well-formed absolute http(s) URL. Never retried."""

    def __init__(self, url: str, reason: str | None = None) -> None:
        message = f"Invalid URL: {url!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.url = url


class EncodingError(NetworkError):
    """Request body could not be encoded. Never retried."""


class TransportError(NetworkError):
    """Failure below the HTTP layer (DNS, connection reset, timeout, TLS)."""


class HttpError(NetworkError):
    """Response arrived with a status outside 200..299.

    Attributes:
        status_code: HTTP status code.
        body: Raw response payload, kept for diagnostics.
    """

    def __init__(self, status_code: int, body: bytes = b"") -> None:
        super().__init__(f"HTTP error {status_code}")
        self.status_code = status_code
        self.body = body

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code <= 499

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.status_code <= 599


class DecodingError(NetworkError):
    """2xx payload could not be decoded into the requested type. Never retried."""


class MaxRetriesExceededError(NetworkError):
    """Attempt loop ended without a terminal result.

    Attributes:
        last_error: Most recent concrete failure, if one was captured.
    """

    def __init__(self, attempts: int, last_error: BaseException | None = None) -> None:
        message = f"Max retries exceeded after {attempts} attempt(s)"
        if last_error is not None:
            message = f"{message}: {last_error}"
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error
