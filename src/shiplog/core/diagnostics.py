"""
Internal diagnostics channel.

The transport cannot log through itself, so its own operational messages
(initialised, batch sent, send failed, retry scheduled, ...) go to stderr
as single JSON lines. Output is gated by
``Settings().core.internal_logging_enabled`` which is read once and cached;
tests reset the cache by setting ``_internal_logging_enabled = None``.

Diagnostics must never raise into the caller.
"""

from __future__ import annotations

import sys
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable

import orjson

_LEVEL_PRIORITY = {"DEBUG": 10, "INFO": 20, "WARN": 30}

_internal_logging_enabled: bool | None = None
_diagnostics_level: str | None = None

# Minimum seconds between two emissions sharing a _rate_limit_key
RATE_LIMIT_WINDOW_SECONDS = 5.0
_rate_limit_lock = threading.Lock()
_rate_limit_last: dict[str, float] = {}

_writer: Callable[[str], None] | None = None


def _load_settings() -> None:
    global _internal_logging_enabled, _diagnostics_level
    try:
        from .settings import Settings

        core = Settings().core
        _internal_logging_enabled = bool(core.internal_logging_enabled)
        _diagnostics_level = str(core.diagnostics_level)
    except Exception:
        _internal_logging_enabled = True
        _diagnostics_level = "INFO"


def is_enabled(level: str = "INFO") -> bool:
    if _internal_logging_enabled is None:
        _load_settings()
    if not _internal_logging_enabled:
        return False
    threshold = _LEVEL_PRIORITY.get(_diagnostics_level or "INFO", 20)
    return _LEVEL_PRIORITY.get(level, 20) >= threshold


def configure(*, enabled: bool | None = None, level: str | None = None) -> None:
    """Override the cached settings (used by the CLI and tests)."""
    global _internal_logging_enabled, _diagnostics_level
    if _internal_logging_enabled is None:
        _load_settings()
    if enabled is not None:
        _internal_logging_enabled = enabled
    if level is not None:
        _diagnostics_level = level.upper()


def set_writer(writer: Callable[[str], None] | None) -> None:
    """Redirect diagnostics lines; ``None`` restores stderr."""
    global _writer
    _writer = writer


def _rate_limited(key: str | None) -> bool:
    if key is None:
        return False
    now = time.monotonic()
    with _rate_limit_lock:
        last = _rate_limit_last.get(key)
        if last is not None and now - last < RATE_LIMIT_WINDOW_SECONDS:
            return True
        _rate_limit_last[key] = now
    return False


def _write_line(line: str) -> None:
    if _writer is not None:
        _writer(line)
        return
    stream = sys.stderr
    stream.write(line + "\n")
    stream.flush()


def emit(
    level: str,
    component: str,
    message: str,
    *,
    _rate_limit_key: str | None = None,
    **fields: Any,
) -> None:
    try:
        if not is_enabled(level):
            return
        if _rate_limited(_rate_limit_key):
            return
        record: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "component": component,
            "message": message,
        }
        record.update(fields)
        line = orjson.dumps(record, default=str).decode("utf-8")
        _write_line(line)
    except Exception:
        # Diagnostics must never break the caller
        pass


def debug(component: str, message: str, **fields: Any) -> None:
    emit("DEBUG", component, message, **fields)


def info(component: str, message: str, **fields: Any) -> None:
    emit("INFO", component, message, **fields)


def warn(component: str, message: str, **fields: Any) -> None:
    emit("WARN", component, message, **fields)


def _reset_rate_limits() -> None:
    """Forget rate-limit history (for testing only)."""
    with _rate_limit_lock:
        _rate_limit_last.clear()
