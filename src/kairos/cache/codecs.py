"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Payload codecs used at the persistence boundary.
"""

from __future__ import annotations

from typing import Any, Generic, Protocol

from pydantic import TypeAdapter, ValidationError

from ..errors import CachePersistenceError
from .types import JSONValue, T


class PayloadCodec(Protocol[T]):
    """Converts cached payloads to and from JSON-compatible values."""

    def encode(self, value: T) -> JSONValue: ...

    def decode(self, raw: JSONValue) -> T: ...


class JSONCodec:
    """Identity codec for payloads that already are JSON-compatible."""

    def encode(self, value: Any) -> JSONValue:
        return value

    def decode(self, raw: JSONValue) -> Any:
        return raw


class TypeAdapterCodec(Generic[T]):
    """
    Codec driven by a pydantic ``TypeAdapter``.

    Works for dataclasses, pydantic models, typed dicts and containers of
    those; decode failures surface as ``CachePersistenceError``.
    """

    def __init__(self, payload_type: type[T] | Any) -> None:
        self._adapter: TypeAdapter[T] = TypeAdapter(payload_type)

    def encode(self, value: T) -> JSONValue:
        return self._adapter.dump_python(value, mode="json")

    def decode(self, raw: JSONValue) -> T:
        try:
            return self._adapter.validate_python(raw)
        except ValidationError as exc:
            raise CachePersistenceError(f"Stored payload failed validation: {exc}") from exc
