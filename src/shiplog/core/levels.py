"""Log level names and their OTLP severity numbers.

Levels travel over the wire twice: as ``severityText`` (the uppercased
name the caller used) and as ``severityNumber`` (the OTLP numeric range
for that name). Unknown names keep their text and simply carry no number.

Example:
    >>> severity_number("warning")
    13
    >>> is_enabled("DEBUG", minimum="INFO")
    False
"""

from __future__ import annotations

from enum import Enum
from typing import Final


class LogLevel(str, Enum):
    """Canonical level names."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    FATAL = "FATAL"


# OTLP SeverityNumber: the first value of each range
_SEVERITY_NUMBERS: Final[dict[str, int]] = {
    "TRACE": 1,
    "DEBUG": 5,
    "INFO": 9,
    "WARN": 13,
    "WARNING": 13,  # alias
    "ERROR": 17,
    "FATAL": 21,
    "CRITICAL": 21,  # alias
}

_DEFAULT_THRESHOLD: Final[int] = _SEVERITY_NUMBERS["INFO"]


def normalize_level(level: str | LogLevel) -> str:
    """Return the uppercased, stripped level name.

    Raises:
        ValueError: If the level is empty.
    """
    if isinstance(level, LogLevel):
        return level.value
    name = str(level).strip().upper()
    if not name:
        raise ValueError("Log level must not be empty")
    return name


def severity_number(level: str | LogLevel) -> int | None:
    """OTLP severity number for ``level``, or ``None`` if the name is unknown."""
    try:
        return _SEVERITY_NUMBERS.get(normalize_level(level))
    except ValueError:
        return None


def get_level_priority(level: str | LogLevel) -> int:
    """Priority used for threshold comparisons. Unknown levels rank as INFO."""
    number = severity_number(level)
    return _DEFAULT_THRESHOLD if number is None else number


def is_enabled(level: str | LogLevel, *, minimum: str | LogLevel) -> bool:
    return get_level_priority(level) >= get_level_priority(minimum)


def get_all_levels() -> dict[str, int]:
    """All known level names (aliases included) with their severity numbers."""
    return dict(_SEVERITY_NUMBERS)
