"""
Pytest fixtures for shiplog.

Register with ``pytest_plugins = ("shiplog.testing.fixtures",)``.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Generator
from typing import Any

import pytest

from ..core import diagnostics
from ..core.settings import TransportConfig
from ..metrics.metrics import MetricsCollector
from ..transport.transport import ParseableTransport
from .mocks import RecordingSender


@pytest.fixture
def recording_sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def transport_factory() -> Generator[Callable[..., ParseableTransport], None, None]:
    """Build started transports that are closed on teardown.

    Defaults keep the timer and size trigger out of the way:
    ``batch_size=1000`` and ``flush_interval_ms=60_000``.
    """
    created: list[ParseableTransport] = []

    def _make(
        sender: Any | None = None,
        *,
        start: bool = True,
        metrics: MetricsCollector | None = None,
        **overrides: Any,
    ) -> ParseableTransport:
        options: dict[str, Any] = {"batch_size": 1000, "flush_interval_ms": 60_000}
        options.update(overrides)
        transport = ParseableTransport(
            TransportConfig(**options),
            sender=sender if sender is not None else RecordingSender(),
            metrics=metrics,
        )
        if start:
            transport.start()
        created.append(transport)
        return transport

    yield _make
    for transport in created:
        transport.close(timeout=5.0)


@pytest.fixture
def captured_diagnostics() -> Generator[list[dict[str, Any]], None, None]:
    """Enable diagnostics at DEBUG and collect emitted records as dicts."""
    lines: list[dict[str, Any]] = []
    diagnostics.configure(enabled=True, level="DEBUG")
    diagnostics._reset_rate_limits()
    diagnostics.set_writer(lambda line: lines.append(json.loads(line)))
    yield lines
    diagnostics.set_writer(None)
    diagnostics._reset_rate_limits()
