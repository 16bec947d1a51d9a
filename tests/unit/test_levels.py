from __future__ import annotations

import pytest

from shiplog.core.levels import (
    LogLevel,
    get_all_levels,
    get_level_priority,
    is_enabled,
    normalize_level,
    severity_number,
)


@pytest.mark.parametrize(
    ("level", "expected"),
    [
        ("TRACE", 1),
        ("debug", 5),
        ("Info", 9),
        ("WARN", 13),
        ("warning", 13),
        ("ERROR", 17),
        ("FATAL", 21),
        ("critical", 21),
        (LogLevel.ERROR, 17),
    ],
)
def test_severity_numbers_follow_otlp_ranges(level: str, expected: int) -> None:
    assert severity_number(level) == expected


def test_unknown_level_keeps_text_without_number() -> None:
    assert normalize_level(" notice ") == "NOTICE"
    assert severity_number("notice") is None
    assert get_level_priority("notice") == get_level_priority("INFO")


def test_empty_level_rejected() -> None:
    with pytest.raises(ValueError):
        normalize_level("  ")
    assert severity_number("") is None


def test_threshold_comparison() -> None:
    assert is_enabled("ERROR", minimum="INFO")
    assert is_enabled("INFO", minimum="INFO")
    assert not is_enabled("DEBUG", minimum="INFO")
    assert is_enabled("warning", minimum=LogLevel.WARN)


def test_get_all_levels_returns_copy() -> None:
    levels = get_all_levels()
    levels["CUSTOM"] = 99
    assert "CUSTOM" not in get_all_levels()
    assert levels["WARNING"] == levels["WARN"]
