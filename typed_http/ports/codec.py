"""Codec port definition."""

from __future__ import annotations

from typing import Any, Protocol, TypeVar

__all__ = ["CodecPort"]

T = TypeVar("T")


class CodecPort(Protocol):
    """Interface for turning typed values into bytes and back."""

    content_type: str

    def encode(self, value: Any, /) -> bytes:
        """Serialize a value.

        Raises:
            EncodingError: If the value cannot be serialized.
        """
        ...

    def decode(self, data: bytes, type_: type[T], /) -> T:
        """Deserialize bytes into an instance of ``type_``.

        Raises:
            DecodingError: If the payload does not match the type.
        """
        ...
