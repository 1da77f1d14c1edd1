"""JSON codec built on pydantic type adapters."""

from __future__ import annotations

import functools
from typing import Any, TypeVar

from pydantic import BaseModel, PydanticSchemaGenerationError, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from typed_http.ports.codec import CodecPort
from typed_http.ports.errors import DecodingError, EncodingError

__all__ = ["PydanticJsonCodec"]

T = TypeVar("T")


@functools.lru_cache(maxsize=256)
def _adapter_for(type_: Any) -> TypeAdapter[Any]:
    return TypeAdapter(type_)


class PydanticJsonCodec(CodecPort):
    """UTF-8 JSON codec.

    Encodes pydantic models, dataclasses, TypedDicts and builtin containers;
    decodes into any type pydantic can validate (``User``, ``list[User]``,
    ``dict[str, int]`` ...).
    """

    content_type = "application/json"

    def __init__(self, *, by_alias: bool = True, exclude_none: bool = False) -> None:
        self.by_alias = by_alias
        self.exclude_none = exclude_none

    def encode(self, value: Any) -> bytes:
        """Serialize ``value`` to JSON bytes.

        Raises:
            EncodingError: If the value is not serializable.
        """
        try:
            if isinstance(value, BaseModel):
                return value.model_dump_json(by_alias=self.by_alias, exclude_none=self.exclude_none).encode()
            return _adapter_for(type(value)).dump_json(
                value, by_alias=self.by_alias, exclude_none=self.exclude_none
            )
        except (PydanticSerializationError, PydanticSchemaGenerationError, TypeError, ValueError) as e:
            raise EncodingError(f"Cannot encode {type(value).__name__} as JSON: {e}") from e

    def decode(self, data: bytes, type_: type[T]) -> T:
        """Validate JSON bytes as ``type_``.

        An empty payload decodes to None when ``type_`` is None.

        Raises:
            DecodingError: If the payload is not valid JSON for ``type_``.
        """
        if type_ is None or type_ is type(None):
            if not data.strip():
                return None  # type: ignore[return-value]
        try:
            return _adapter_for(type_).validate_json(data)
        except ValidationError as e:
            raise DecodingError(f"Cannot decode response as {getattr(type_, '__name__', type_)}: {e}") from e
        except (PydanticSchemaGenerationError, TypeError) as e:
            raise DecodingError(f"Unsupported response type {type_!r}: {e}") from e
