"""
Log event model consumed by the transport.

A ``LogEvent`` is the only thing the transport accepts: a level, a message,
the moment it was recorded and an ordered mapping of caller-supplied
fields. Events are immutable once built so a batch snapshot can be encoded
while producers keep appending new events.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from .levels import LogLevel, normalize_level

# Keys that collide with protocol-level record fields
RESERVED_KEYS: frozenset[str] = frozenset({"level", "message", "timestamp"})


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def coerce_timestamp(value: datetime | float | int | str) -> datetime:
    """Turn a datetime, epoch seconds or ISO-8601 string into an aware datetime.

    Naive datetimes are taken to be UTC.
    """
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, bool):
        raise ValueError("Timestamp must be a datetime, epoch seconds or ISO string")
    elif isinstance(value, (int, float)):
        ts = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        ts = datetime.fromisoformat(text)
    else:
        raise ValueError("Timestamp must be a datetime, epoch seconds or ISO string")
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class LogEvent:
    """One structured log record.

    ``fields`` keeps insertion order; that order is the order attributes
    are encoded in.
    """

    level: str
    message: str
    timestamp: datetime = field(default_factory=utc_now)
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "level", normalize_level(self.level))
        if not isinstance(self.message, str):
            object.__setattr__(self, "message", str(self.message))
        object.__setattr__(self, "timestamp", coerce_timestamp(self.timestamp))
        # Private copy so later caller mutations cannot leak into a batch
        object.__setattr__(
            self, "fields", {str(k): v for k, v in dict(self.fields).items()}
        )

    @classmethod
    def create(
        cls,
        level: str | LogLevel,
        message: Any,
        *,
        timestamp: datetime | float | str | None = None,
        **fields: Any,
    ) -> LogEvent:
        """Keyword-friendly constructor: ``LogEvent.create("INFO", "hi", user="u1")``."""
        return cls(
            level=normalize_level(level),
            message=message,
            timestamp=utc_now() if timestamp is None else timestamp,
            fields=fields,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> LogEvent:
        """Build an event from a flat record such as ``{"level": ..., "message": ..., **meta}``.

        Every key other than the reserved ones becomes a field.
        """
        timestamp = data.get("timestamp")
        return cls(
            level=data.get("level", LogLevel.INFO.value),
            message=data.get("message", ""),
            timestamp=utc_now() if timestamp is None else timestamp,
            fields={k: v for k, v in data.items() if k not in RESERVED_KEYS},
        )

    def with_fields(self, **extra: Any) -> LogEvent:
        """Return a copy with ``extra`` merged over the existing fields."""
        merged = dict(self.fields)
        merged.update(extra)
        return LogEvent(
            level=self.level,
            message=self.message,
            timestamp=self.timestamp,
            fields=merged,
        )

    def to_dict(self) -> dict[str, Any]:
        """Flat mapping view, the inverse of :meth:`from_mapping`."""
        out: dict[str, Any] = {
            "level": self.level,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
        for key, value in self.fields.items():
            if key not in RESERVED_KEYS:
                out[key] = value
        return out
