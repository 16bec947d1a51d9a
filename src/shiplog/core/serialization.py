"""
JSON serialization helpers built on orjson.

Two jobs live here: serializing a complete wire payload to bytes without an
intermediate ``str``, and turning arbitrary field values into the compact
JSON text used for structured attribute values. Key order is never sorted;
insertion order is part of the output contract.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Callable, Mapping

import orjson

from .errors import SerializationError


def _default(obj: Any) -> Any:
    """Fallback hook for types orjson does not handle natively.

    Keep permissive: a log attribute should degrade to text, never fail.
    """
    if hasattr(obj, "model_dump"):
        return obj.model_dump(exclude_none=True)
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return bytes(obj).decode("utf-8", errors="replace")
    if isinstance(obj, Enum):
        return obj.value
    return str(obj)


@dataclass
class SerializedView:
    """A lightweight container exposing zero-copy friendly views."""

    data: bytes

    @property
    def view(self) -> memoryview:
        return memoryview(self.data)

    def __bytes__(self) -> bytes:  # convenience
        return self.data

    def __len__(self) -> int:
        return len(self.data)


def serialize_mapping_to_json_bytes(
    payload: Mapping[str, Any],
    *,
    on_memory_usage_bytes: Callable[[int], None] | None = None,
) -> SerializedView:
    """Serialize a mapping to JSON bytes with orjson.

    Raises:
        SerializationError: If the payload contains values orjson rejects
            even after the fallback hook (e.g. integers beyond 64 bits).
    """
    try:
        data = orjson.dumps(
            payload,
            default=_default,
            option=orjson.OPT_NON_STR_KEYS,
        )
    except TypeError as e:
        raise SerializationError("Serialization failed", cause=e) from e
    if on_memory_usage_bytes is not None:
        try:
            on_memory_usage_bytes(len(data))
        except Exception:
            # Metrics callbacks must never break serialization
            pass
    return SerializedView(data=data)


def stringify_value(value: Any) -> str:
    """Coerce one field value to its transmitted string form.

    Strings pass through, booleans become ``true``/``false``, ``None``
    becomes ``null``, mappings and sequences become compact JSON, temporal
    values become ISO-8601 and everything else goes through ``str``.
    """
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, Enum):
        return stringify_value(value.value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, (Mapping, list, tuple, set, frozenset)) or hasattr(
        value, "model_dump"
    ):
        try:
            return orjson.dumps(
                value, default=_default, option=orjson.OPT_NON_STR_KEYS
            ).decode("utf-8")
        except TypeError:
            pass
    try:
        return str(value)
    except Exception:
        return f"<unprintable {type(value).__name__}>"
