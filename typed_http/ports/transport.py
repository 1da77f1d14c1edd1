"""Transport port definition."""

from __future__ import annotations

from typing import Protocol

from typed_http.ports.http import TransportRequest, TransportResponse

__all__ = ["TransportPort"]


class TransportPort(Protocol):
    """Interface for sending a fully built request.

    Implementations own connection handling and per-attempt timeouts.
    """

    async def send(self, request: TransportRequest, /) -> TransportResponse:
        """Send one attempt.

        Args:
            request: Final, intercepted request.

        Returns:
            Raw response, whatever its status code.

        Raises:
            TransportError: On connectivity or protocol failures.
        """
        ...
