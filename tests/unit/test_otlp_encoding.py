from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from shiplog.core.events import LogEvent
from shiplog.core.otlp import (
    LogsEncoder,
    attributes_as_dict,
    encode_attributes,
    encode_record,
    iter_log_records,
    to_unix_nano,
)

pytestmark = pytest.mark.critical

_TS = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_error_event_encoding_example() -> None:
    event = LogEvent.create("ERROR", "boom", code=42, nested={"a": 1})
    doc = json.loads(LogsEncoder().encode([event]))
    (record,) = iter_log_records(doc)

    assert record["severityText"] == "ERROR"
    assert record["severityNumber"] == 17
    assert record["body"] == {"stringValue": "boom"}
    attrs = attributes_as_dict(record)
    assert attrs == {"code": "42", "nested": '{"a":1}'}
    assert not {"level", "message", "timestamp"} & set(attrs)


def test_document_shape_and_resource_identity() -> None:
    encoder = LogsEncoder(
        service_name="billing",
        resource_attributes={"deployment.environment": "prod", "service.name": "x"},
        scope_name="billing-scope",
        scope_version="9.9",
    )
    doc = encoder.build_payload([LogEvent.create("INFO", "m")])

    (resource_logs,) = doc["resourceLogs"]
    assert resource_logs["resource"]["attributes"] == [
        {"key": "service.name", "value": {"stringValue": "billing"}},
        {"key": "deployment.environment", "value": {"stringValue": "prod"}},
    ]
    (scope_logs,) = resource_logs["scopeLogs"]
    assert scope_logs["scope"] == {"name": "billing-scope", "version": "9.9"}
    assert len(scope_logs["logRecords"]) == 1


def test_records_keep_batch_order() -> None:
    events = [LogEvent.create("INFO", f"m{i}") for i in range(7)]
    records = iter_log_records(json.loads(LogsEncoder().encode(events)))
    assert [r["body"]["stringValue"] for r in records] == [f"m{i}" for i in range(7)]


def test_time_fields_are_decimal_nanosecond_strings() -> None:
    event = LogEvent.create("INFO", "m", timestamp=_TS)
    record = encode_record(event, observed_time_unix_nano=123)
    assert record["timeUnixNano"] == "1704067200000000000"
    assert record["observedTimeUnixNano"] == "123"
    assert "observedTimeUnixNano" not in encode_record(event)


def test_to_unix_nano_keeps_microseconds() -> None:
    ts = datetime(2024, 1, 1, 0, 0, 0, 123456, tzinfo=timezone.utc)
    assert to_unix_nano(ts) == 1_704_067_200_123_456_000
    assert to_unix_nano(datetime(1970, 1, 1)) == 0


def test_unknown_level_has_text_but_no_number() -> None:
    record = encode_record(LogEvent.create("notice", "m"))
    assert record["severityText"] == "NOTICE"
    assert "severityNumber" not in record


def test_attributes_follow_insertion_order_and_skip_reserved() -> None:
    attrs = encode_attributes(
        {"z": 1, "level": "x", "a": True, "message": "y", "m": None, "timestamp": 0}
    )
    assert [a["key"] for a in attrs] == ["z", "a", "m"]
    assert [a["value"]["stringValue"] for a in attrs] == ["1", "true", "null"]


def test_empty_batch_encodes_empty_record_list() -> None:
    doc = json.loads(LogsEncoder().encode([]))
    assert iter_log_records(doc) == []
