"""Forward records from the standard ``logging`` module into a transport.

Records that the transport itself causes are never forwarded: anything from
the ``shiplog``, ``httpx`` or ``httpcore`` loggers, and anything logged on a
transport worker thread. Forwarding those would turn every delivery into a
new event and the transport would never go idle.
"""

from __future__ import annotations

import logging
import threading
import traceback
from datetime import datetime, timezone
from typing import Any, Mapping, Protocol

from .events import LogEvent

# Attributes every LogRecord carries; anything else came from ``extra=``
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("x", logging.INFO, "x", 0, "x", None, None)).keys()
) | {"message", "asctime", "taskName"}

# Worker threads are named f"{WORKER_THREAD_PREFIX}{stream}"
WORKER_THREAD_PREFIX = "shiplog-"

_IGNORED_LOGGERS = ("shiplog", "httpx", "httpcore")


def _is_own_record(record: logging.LogRecord) -> bool:
    name = record.name
    for prefix in _IGNORED_LOGGERS:
        if name == prefix or name.startswith(prefix + "."):
            return True
    return threading.current_thread().name.startswith(WORKER_THREAD_PREFIX)


class EventSink(Protocol):
    def accept(self, event: LogEvent | Mapping[str, Any]) -> None: ...


class ShiplogHandler(logging.Handler):
    """``logging.Handler`` that converts records into :class:`LogEvent`."""

    def __init__(self, transport: EventSink, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._transport = transport

    def emit(self, record: logging.LogRecord) -> None:
        if _is_own_record(record):
            return
        try:
            fields: dict[str, Any] = {
                "stdlib_logger": record.name,
                "module": record.module,
                "lineno": record.lineno,
            }
            for key, value in record.__dict__.items():
                if key not in _STANDARD_ATTRS and not key.startswith("_"):
                    fields[key] = value
            if record.exc_info and record.exc_info[0] is not None:
                exc_type, exc_value, exc_tb = record.exc_info
                fields["error.type"] = exc_type.__name__
                fields["error.message"] = str(exc_value)
                fields["error.stack"] = "".join(
                    traceback.format_exception(exc_type, exc_value, exc_tb)
                )
            event = LogEvent(
                level=record.levelname,
                message=record.getMessage(),
                timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc),
                fields=fields,
            )
            self._transport.accept(event)
        except Exception:
            self.handleError(record)


def enable_stdlib_bridge(
    transport: EventSink,
    *,
    level: int = logging.INFO,
    logger_name: str | None = None,
    remove_existing_handlers: bool = False,
) -> ShiplogHandler:
    """Attach a :class:`ShiplogHandler` to ``logger_name`` (root by default)."""
    target = logging.getLogger(logger_name)
    if remove_existing_handlers:
        for handler in list(target.handlers):
            target.removeHandler(handler)
    handler = ShiplogHandler(transport, level=level)
    target.addHandler(handler)
    if target.level == logging.NOTSET or target.level > level:
        target.setLevel(level)
    return handler


def disable_stdlib_bridge(
    handler: ShiplogHandler, *, logger_name: str | None = None
) -> None:
    logging.getLogger(logger_name).removeHandler(handler)
