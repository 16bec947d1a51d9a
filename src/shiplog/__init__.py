"""
Public entrypoints for shiplog.

Provides ``get_transport()`` and ``get_logger()`` wired from ``Settings``.
Nothing here is a singleton: every call builds a new, independent instance
that the hosting process owns and closes.
"""

from __future__ import annotations

from typing import Any

from ._version import __version__
from .core.events import LogEvent
from .core.levels import LogLevel
from .core.logger import ShiplogLogger
from .core.settings import Settings, TransportConfig
from .core.stdlib_bridge import ShiplogHandler, enable_stdlib_bridge
from .metrics.metrics import MetricsCollector
from .transport import BatchSender, ParseableTransport

__all__ = [
    "LogEvent",
    "LogLevel",
    "MetricsCollector",
    "ParseableTransport",
    "Settings",
    "ShiplogHandler",
    "ShiplogLogger",
    "TransportConfig",
    "VERSION",
    "__version__",
    "enable_stdlib_bridge",
    "get_logger",
    "get_transport",
]

VERSION = __version__


def get_transport(
    settings: Settings | None = None,
    *,
    sender: BatchSender | None = None,
    metrics: MetricsCollector | None = None,
    start: bool = True,
    **overrides: Any,
) -> ParseableTransport:
    """Build a transport from settings (environment by default) and start it.

    ``overrides`` replace individual :class:`TransportConfig` fields.

    Example:
        transport = get_transport(stream="billing", batch_size=50)
        transport.accept(LogEvent.create("INFO", "invoice created", id=42))
        transport.close()
    """
    cfg_source = settings or Settings()
    if metrics is None and cfg_source.core.enable_metrics:
        metrics = MetricsCollector(enabled=True)
    transport = ParseableTransport(
        cfg_source.to_transport_config(),
        sender=sender,
        metrics=metrics,
        **overrides,
    )
    if start:
        transport.start()
    return transport


def get_logger(
    name: str | None = None,
    *,
    settings: Settings | None = None,
    transport: ParseableTransport | None = None,
) -> ShiplogLogger:
    """Return a logger facade; builds and starts a transport when none is given.

    The caller owns the transport: close it with ``logger.transport.close()``.
    """
    cfg_source = settings or Settings()
    if transport is None:
        transport = get_transport(cfg_source)
    return ShiplogLogger(
        transport,
        name=name,
        min_level=cfg_source.core.log_level,
    )
