"""
Logger facade over a transport.

``ShiplogLogger`` turns ``logger.info("msg", key=value)`` calls into
:class:`LogEvent` objects and hands them to a transport's ``accept``. It
owns no global state: every logger is bound to the transport it was
built with, and ``bind()`` derives children sharing that transport.

The workflow/node/http helpers emit the structured events of a workflow
automation host with stable ``event_type`` values so they can be queried
uniformly on the backend.
"""

from __future__ import annotations

import sys
import traceback
from typing import Any, Mapping, Protocol

from . import diagnostics
from .events import LogEvent
from .levels import LogLevel, is_enabled, normalize_level


class EventSink(Protocol):
    def accept(self, event: LogEvent | Mapping[str, Any]) -> None: ...


def _error_fields(error: BaseException | None) -> dict[str, Any]:
    if error is None:
        return {}
    return {
        "error_message": str(error),
        "error_name": type(error).__name__,
        "error_stack": "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        ),
    }


class ShiplogLogger:
    """Structured logger writing to a transport."""

    def __init__(
        self,
        transport: EventSink,
        *,
        name: str | None = None,
        min_level: str | LogLevel = LogLevel.INFO,
        bound: Mapping[str, Any] | None = None,
    ) -> None:
        self._transport = transport
        self._name = name
        self._min_level = normalize_level(min_level)
        self._bound: dict[str, Any] = dict(bound or {})

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def transport(self) -> EventSink:
        return self._transport

    @property
    def min_level(self) -> str:
        return self._min_level

    def bind(self, **fields: Any) -> ShiplogLogger:
        """Child logger that stamps ``fields`` on every event."""
        merged = dict(self._bound)
        merged.update(fields)
        return ShiplogLogger(
            self._transport, name=self._name, min_level=self._min_level, bound=merged
        )

    def is_enabled_for(self, level: str | LogLevel) -> bool:
        return is_enabled(level, minimum=self._min_level)

    def log(self, level: str | LogLevel, message: Any, **fields: Any) -> None:
        try:
            if not self.is_enabled_for(level):
                return
            merged: dict[str, Any] = {}
            if self._name:
                merged["logger"] = self._name
            merged.update(self._bound)
            merged.update(fields)
            self._transport.accept(LogEvent.create(level, message, **merged))
        except Exception as exc:
            diagnostics.warn(
                "logger",
                "log call failed",
                error=str(exc),
                _rate_limit_key="logger-log",
            )

    def trace(self, message: Any, **fields: Any) -> None:
        self.log(LogLevel.TRACE, message, **fields)

    def debug(self, message: Any, **fields: Any) -> None:
        self.log(LogLevel.DEBUG, message, **fields)

    def info(self, message: Any, **fields: Any) -> None:
        self.log(LogLevel.INFO, message, **fields)

    def warning(self, message: Any, **fields: Any) -> None:
        self.log(LogLevel.WARN, message, **fields)

    warn = warning

    def error(self, message: Any, **fields: Any) -> None:
        self.log(LogLevel.ERROR, message, **fields)

    def critical(self, message: Any, **fields: Any) -> None:
        self.log(LogLevel.FATAL, message, **fields)

    def exception(
        self, message: Any, *, exc: BaseException | None = None, **fields: Any
    ) -> None:
        """ERROR event carrying the given (or currently handled) exception."""
        error = exc if exc is not None else sys.exc_info()[1]
        self.log(LogLevel.ERROR, message, **{**_error_fields(error), **fields})

    # ------------------------------------------------------------------
    # Workflow host events
    # ------------------------------------------------------------------

    def workflow_started(
        self,
        workflow_id: str,
        workflow_name: str,
        execution_id: str,
        **metadata: Any,
    ) -> None:
        self.info(
            "Workflow execution started",
            event_type="workflow_started",
            workflow_id=workflow_id,
            workflow_name=workflow_name,
            execution_id=execution_id,
            **metadata,
        )

    def workflow_completed(
        self,
        workflow_id: str,
        workflow_name: str,
        execution_id: str,
        duration_seconds: float,
        **metadata: Any,
    ) -> None:
        self.info(
            "Workflow execution completed",
            event_type="workflow_completed",
            workflow_id=workflow_id,
            workflow_name=workflow_name,
            execution_id=execution_id,
            duration_seconds=duration_seconds,
            **metadata,
        )

    def workflow_failed(
        self,
        workflow_id: str,
        workflow_name: str,
        execution_id: str,
        error: BaseException | None,
        duration_seconds: float,
        **metadata: Any,
    ) -> None:
        self.error(
            "Workflow execution failed",
            event_type="workflow_failed",
            workflow_id=workflow_id,
            workflow_name=workflow_name,
            execution_id=execution_id,
            duration_seconds=duration_seconds,
            **_error_fields(error),
            **metadata,
        )

    def node_started(
        self,
        workflow_id: str,
        execution_id: str,
        node_type: str,
        node_name: str,
        **metadata: Any,
    ) -> None:
        self.debug(
            "Node execution started",
            event_type="node_started",
            workflow_id=workflow_id,
            execution_id=execution_id,
            node_type=node_type,
            node_name=node_name,
            **metadata,
        )

    def node_completed(
        self,
        workflow_id: str,
        execution_id: str,
        node_type: str,
        node_name: str,
        duration_seconds: float,
        **metadata: Any,
    ) -> None:
        self.debug(
            "Node execution completed",
            event_type="node_completed",
            workflow_id=workflow_id,
            execution_id=execution_id,
            node_type=node_type,
            node_name=node_name,
            duration_seconds=duration_seconds,
            **metadata,
        )

    def node_failed(
        self,
        workflow_id: str,
        execution_id: str,
        node_type: str,
        node_name: str,
        error: BaseException | None,
        duration_seconds: float,
        **metadata: Any,
    ) -> None:
        self.error(
            "Node execution failed",
            event_type="node_failed",
            workflow_id=workflow_id,
            execution_id=execution_id,
            node_type=node_type,
            node_name=node_name,
            duration_seconds=duration_seconds,
            **_error_fields(error),
            **metadata,
        )

    def http_request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str] | None = None,
        **metadata: Any,
    ) -> None:
        self.info(
            "HTTP request made",
            event_type="http_request",
            http_method=method,
            http_url=url,
            http_headers=dict(headers or {}),
            **metadata,
        )

    def http_response(
        self,
        method: str,
        url: str,
        status_code: int,
        duration_seconds: float,
        **metadata: Any,
    ) -> None:
        self.info(
            "HTTP response received",
            event_type="http_response",
            http_method=method,
            http_url=url,
            http_status=status_code,
            duration_seconds=duration_seconds,
            **metadata,
        )
