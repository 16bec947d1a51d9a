from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from shiplog.core.events import RESERVED_KEYS, LogEvent
from shiplog.core.otlp import (
    LogsEncoder,
    attributes_as_dict,
    iter_log_records,
    to_unix_nano,
)
from shiplog.core.serialization import stringify_value

pytestmark = pytest.mark.property

json_key = st.text(
    alphabet=st.characters(min_codepoint=97, max_codepoint=122), min_size=1, max_size=12
)
json_scalars = (
    st.none()
    | st.booleans()
    | st.integers(min_value=-(2**53), max_value=2**53)
    | st.floats(allow_nan=False, allow_infinity=False)
    | st.text(max_size=40)
)
json_values = st.recursive(
    json_scalars,
    lambda children: st.lists(children, max_size=4)
    | st.dictionaries(json_key, children, max_size=4),
    max_leaves=12,
)
field_maps = st.dictionaries(
    json_key | st.sampled_from(sorted(RESERVED_KEYS)), json_values, max_size=8
)

timestamps = st.datetimes(
    min_value=datetime(1970, 1, 1),
    max_value=datetime(2100, 1, 1),
    timezones=st.just(timezone.utc),
)

events = st.builds(
    LogEvent,
    level=st.sampled_from(["DEBUG", "INFO", "WARN", "ERROR", "notice"]),
    message=st.text(max_size=80),
    timestamp=timestamps,
    fields=field_maps,
)


@given(fields=field_maps)
@settings(max_examples=200)
def test_every_non_reserved_field_becomes_one_string_attribute(fields: dict) -> None:
    (record,) = iter_log_records(
        json.loads(LogsEncoder().encode([LogEvent("INFO", "m", fields=fields)]))
    )
    keys = [attr["key"] for attr in record["attributes"]]
    expected = [k for k in fields if k not in RESERVED_KEYS]
    assert keys == expected
    attrs = attributes_as_dict(record)
    for key in expected:
        assert attrs[key] == stringify_value(fields[key])


@given(value=json_values)
def test_structured_values_stringify_to_parseable_json(value: object) -> None:
    if isinstance(value, (dict, list)):
        assert json.loads(stringify_value(value)) == value


@given(batch=st.lists(events, max_size=20))
@settings(max_examples=100)
def test_batch_encoding_preserves_order_and_identity(batch: list[LogEvent]) -> None:
    records = iter_log_records(json.loads(LogsEncoder().encode(batch)))
    assert [r["body"]["stringValue"] for r in records] == [e.message for e in batch]
    assert [r["severityText"] for r in records] == [e.level for e in batch]
    assert [int(r["timeUnixNano"]) for r in records] == [
        to_unix_nano(e.timestamp) for e in batch
    ]


@given(ts=timestamps)
def test_unix_nano_matches_microsecond_epoch(ts: datetime) -> None:
    nanos = to_unix_nano(ts)
    assert nanos % 1000 == 0
    epoch = datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert epoch + timedelta(microseconds=nanos // 1000) == ts
