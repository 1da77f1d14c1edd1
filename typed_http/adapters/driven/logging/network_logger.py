"""Request/response tracing through the standard logging module."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from contextlib import suppress

from typed_http.ports.http import TransportRequest, TransportResponse
from typed_http.ports.logger import LogLevel, NetworkLoggerPort

__all__ = ["NetworkLogger", "mask_headers", "SENSITIVE_HEADERS"]

REDACTED = "***REDACTED***"

# Compared case-insensitively
SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "proxy-authorization",
        "cookie",
        "set-cookie",
        "x-api-key",
        "api-key",
        "x-auth-token",
    }
)

DEFAULT_MAX_BODY_CHARS = 2_000


def mask_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy headers with sensitive values replaced by a placeholder."""
    return {name: REDACTED if name.lower() in SENSITIVE_HEADERS else value for name, value in headers.items()}


def _body_text(body: bytes | None, limit: int) -> str | None:
    if not body:
        return None
    text = body.decode("utf-8", errors="replace")
    if len(text) > limit:
        return f"{text[:limit]}... ({len(text) - limit} more chars)"
    return text


class NetworkLogger(NetworkLoggerPort):
    """Human-readable traces of every exchange.

    Levels:
    - NONE: nothing is logged.
    - MINIMAL: method, URL and status.
    - VERBOSE: also headers (sensitive values masked) and bodies.

    Formatting failures are suppressed; these methods never raise.
    """

    def __init__(
        self,
        level: LogLevel | str = LogLevel.MINIMAL,
        *,
        logger: logging.Logger | None = None,
        max_body_chars: int = DEFAULT_MAX_BODY_CHARS,
    ) -> None:
        self.level = LogLevel(level)
        self.logger = logger or logging.getLogger("typed_http.network")
        self.max_body_chars = max_body_chars

    @property
    def verbose(self) -> bool:
        return self.level is LogLevel.VERBOSE

    def log_request(self, request: TransportRequest) -> None:
        if self.level is LogLevel.NONE:
            return
        with suppress(Exception):
            self.logger.info(f"REQUEST {request.method.value} {request.url} [{request.request_id}]")
            if self.verbose:
                self.logger.info(f"Headers: {mask_headers(request.headers)}")
                text = _body_text(request.body, self.max_body_chars)
                if text is not None:
                    self.logger.info(f"Body: {text}")

    def log_response(self, response: TransportResponse, body: bytes | None = None) -> None:
        if self.level is LogLevel.NONE:
            return
        with suppress(Exception):
            self.logger.info(f"RESPONSE {response.status} {response.url or ''}".rstrip())
            if self.verbose:
                self.logger.info(f"Headers: {mask_headers(response.headers)}")
                text = _body_text(body, self.max_body_chars)
                if text is not None:
                    self.logger.info(f"Data: {text}")

    def log_error(self, error: BaseException, request: TransportRequest) -> None:
        if self.level is LogLevel.NONE:
            return
        with suppress(Exception):
            self.logger.warning(
                f"ERROR {request.method.value} {request.url} [{request.request_id}]: "
                f"{type(error).__name__}: {error}"
            )
