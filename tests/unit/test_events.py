from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from shiplog.core.events import LogEvent, coerce_timestamp


def test_create_normalizes_level_and_keeps_field_order() -> None:
    event = LogEvent.create("warn", "disk low", zeta=1, alpha=2, mid=3)
    assert event.level == "WARN"
    assert list(event.fields) == ["zeta", "alpha", "mid"]
    assert event.timestamp.tzinfo is not None


def test_message_is_stringified() -> None:
    assert LogEvent.create("INFO", 42).message == "42"


def test_fields_are_copied_from_caller() -> None:
    meta = {"a": 1}
    event = LogEvent(level="INFO", message="m", fields=meta)
    meta["b"] = 2
    assert dict(event.fields) == {"a": 1}


def test_event_is_immutable() -> None:
    event = LogEvent.create("INFO", "m")
    with pytest.raises(AttributeError):
        event.message = "other"  # type: ignore[misc]


def test_from_mapping_moves_extra_keys_into_fields() -> None:
    event = LogEvent.from_mapping(
        {
            "level": "error",
            "message": "boom",
            "timestamp": "2024-05-01T12:00:00Z",
            "workflow_id": "wf-1",
            "attempt": 2,
        }
    )
    assert event.level == "ERROR"
    assert event.message == "boom"
    assert event.timestamp == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)
    assert dict(event.fields) == {"workflow_id": "wf-1", "attempt": 2}


def test_from_mapping_defaults() -> None:
    event = LogEvent.from_mapping({})
    assert event.level == "INFO"
    assert event.message == ""
    assert dict(event.fields) == {}


def test_with_fields_merges_without_mutating() -> None:
    base = LogEvent.create("INFO", "m", a=1)
    derived = base.with_fields(b=2, a=3)
    assert dict(base.fields) == {"a": 1}
    assert dict(derived.fields) == {"a": 3, "b": 2}
    assert derived.timestamp == base.timestamp


def test_to_dict_is_flat() -> None:
    ts = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    event = LogEvent.create("INFO", "m", timestamp=ts, user="u1")
    assert event.to_dict() == {
        "level": "INFO",
        "message": "m",
        "timestamp": ts.isoformat(),
        "user": "u1",
    }


def test_coerce_timestamp_variants() -> None:
    naive = datetime(2024, 1, 1, 0, 0, 0)
    assert coerce_timestamp(naive).tzinfo == timezone.utc
    assert coerce_timestamp(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    offset = coerce_timestamp("2024-01-01T02:00:00+02:00")
    assert offset.utcoffset() == timedelta(hours=2)
    with pytest.raises(ValueError):
        coerce_timestamp(True)
    with pytest.raises(ValueError):
        coerce_timestamp([1])  # type: ignore[arg-type]
