"""aiohttp implementation of the transport port."""

import asyncio
import logging
from types import TracebackType

import aiohttp
from aiohttp import ClientTimeout

from typed_http.ports.errors import TransportError
from typed_http.ports.http import TransportRequest, TransportResponse
from typed_http.ports.transport import TransportPort

__all__ = ["AiohttpTransport", "TRANSPORT_ERRORS"]

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SEC = 30.0

# Failures below the HTTP layer, surfaced as TransportError
TRANSPORT_ERRORS = (
    aiohttp.ClientConnectorError,  # Connection refused, DNS failed
    aiohttp.ClientConnectionError,  # Connection error
    aiohttp.ClientOSError,  # OS-level network error
    aiohttp.ServerTimeoutError,  # Server timeout
    aiohttp.ClientPayloadError,  # Truncated or malformed body
    aiohttp.ClientError,  # Any other client-side protocol failure
    asyncio.TimeoutError,  # Total timeout elapsed
)


class AiohttpTransport(TransportPort):
    """Transport backed by an ``aiohttp.ClientSession``.

    Features:
    - Context manager for proper resource cleanup.
    - Per-attempt timeout through ``aiohttp.ClientTimeout``.
    - The body is read inside the response context, so the connection is
      released even when the calling task is cancelled mid-read.
    """

    def __init__(
        self,
        *,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            timeout_sec: Total timeout for one attempt.
            session: Externally managed session; the transport will not close it.
        """
        self.timeout = ClientTimeout(total=timeout_sec)
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "AiohttpTransport":
        """Enter async context manager (start session).

        Returns:
            Self for use in async with statement.
        """
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Exit async context manager (close an owned session).

        Args:
            exc_type: Exception type if raised in context.
            exc: Exception instance if raised in context.
            tb: Traceback if raised in context.
        """
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    async def send(self, request: TransportRequest) -> TransportResponse:
        """Send one attempt and read the full body.

        Args:
            request: Final, intercepted request.

        Returns:
            Raw response for any HTTP status.

        Raises:
            RuntimeError: If session not initialized.
            TransportError: On connection, timeout or payload failures.
        """
        if self.session is None:
            raise RuntimeError("Session not initialized; use 'async with' context manager")

        try:
            async with self.session.request(
                request.method.value,
                request.url,
                headers=request.headers,
                data=request.body,
                timeout=self.timeout,
            ) as resp:
                body = await resp.read()
                return TransportResponse(
                    status=resp.status,
                    body=body,
                    headers=resp.headers,
                    url=resp.url,
                )
        except TRANSPORT_ERRORS as e:
            logger.debug(f"Transport failure for {request.method.value} {request.url}: {e!r}")
            raise TransportError(f"{request.method.value} {request.url} failed: {e}") from e
