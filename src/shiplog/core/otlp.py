"""
OTLP logs (JSON) encoding.

Turns an ordered batch of :class:`LogEvent` into the nested
``resourceLogs -> scopeLogs -> logRecords`` document accepted by
Parseable's ``/v1/logs`` endpoint. One call encodes one batch snapshot as a
single contiguous, ordered list of records.

Example:
    encoder = LogsEncoder(service_name="billing")
    body = encoder.encode(events)  # bytes, ready to POST
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from .._version import __version__
from .events import RESERVED_KEYS, LogEvent
from .levels import severity_number
from .serialization import serialize_mapping_to_json_bytes, stringify_value

INGEST_PATH = "/v1/logs"
LOG_SOURCE = "otel-logs"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_unix_nano(ts: datetime) -> int:
    """Nanoseconds since the epoch, exact to the microsecond."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    delta = ts - _EPOCH
    micros = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    return micros * 1_000


def string_attribute(key: str, value: Any) -> dict[str, Any]:
    return {"key": key, "value": {"stringValue": stringify_value(value)}}


def encode_attributes(fields: Mapping[str, Any]) -> list[dict[str, Any]]:
    """One string attribute per field, in insertion order, reserved keys skipped."""
    return [
        string_attribute(str(key), value)
        for key, value in fields.items()
        if key not in RESERVED_KEYS
    ]


def encode_record(
    event: LogEvent, *, observed_time_unix_nano: int | None = None
) -> dict[str, Any]:
    record: dict[str, Any] = {
        "timeUnixNano": str(to_unix_nano(event.timestamp)),
    }
    if observed_time_unix_nano is not None:
        record["observedTimeUnixNano"] = str(observed_time_unix_nano)
    number = severity_number(event.level)
    if number is not None:
        record["severityNumber"] = number
    record["severityText"] = event.level
    record["body"] = {"stringValue": event.message}
    record["attributes"] = encode_attributes(event.fields)
    return record


@dataclass(frozen=True)
class LogsEncoder:
    """Resource and scope identity shared by every batch of one transport."""

    service_name: str = "shiplog"
    resource_attributes: Mapping[str, str] = field(default_factory=dict)
    scope_name: str = "shiplog"
    scope_version: str = __version__

    def resource(self) -> dict[str, Any]:
        attrs = [string_attribute("service.name", self.service_name)]
        for key, value in self.resource_attributes.items():
            if key != "service.name":
                attrs.append(string_attribute(key, value))
        return {"attributes": attrs}

    def build_payload(self, events: Sequence[LogEvent]) -> dict[str, Any]:
        observed = time.time_ns()
        return {
            "resourceLogs": [
                {
                    "resource": self.resource(),
                    "scopeLogs": [
                        {
                            "scope": {
                                "name": self.scope_name,
                                "version": self.scope_version,
                            },
                            "logRecords": [
                                encode_record(e, observed_time_unix_nano=observed)
                                for e in events
                            ],
                        }
                    ],
                }
            ]
        }

    def encode(self, events: Sequence[LogEvent]) -> bytes:
        """Serialize a batch to the request body.

        Raises:
            SerializationError: If the document cannot be serialized.
        """
        return serialize_mapping_to_json_bytes(self.build_payload(events)).data


def iter_log_records(payload: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Flatten every log record out of a decoded OTLP logs document."""
    records: list[dict[str, Any]] = []
    for resource_logs in payload.get("resourceLogs", []):
        for scope_logs in resource_logs.get("scopeLogs", []):
            records.extend(scope_logs.get("logRecords", []))
    return records


def attributes_as_dict(record: Mapping[str, Any]) -> dict[str, str]:
    """``[{"key": k, "value": {"stringValue": v}}]`` -> ``{k: v}``."""
    return {
        attr["key"]: attr["value"].get("stringValue", "")
        for attr in record.get("attributes", [])
    }
