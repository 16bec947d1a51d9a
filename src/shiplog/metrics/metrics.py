"""
Transport metrics collection.

Implements minimal Prometheus-compatible counters and a flush latency
histogram for the batching transport.

Design goals:
- Safe to call from producer threads and from the transport's loop thread
- Zero global state; each collector owns an isolated registry
- In-memory counters always kept so tests can assert without Prometheus
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Any

from prometheus_client import CollectorRegistry, Counter, Histogram


@dataclass
class TransportMetrics:
    """Captured runtime counters for quick assertions in tests."""

    events_accepted: int = 0
    events_dropped: int = 0
    events_sent: int = 0
    batches_sent: int = 0
    send_failures: int = 0
    retries_scheduled: int = 0


class MetricsCollector:
    """Instance-scoped metrics collector.

    When disabled all Prometheus calls are skipped while the in-memory
    counters keep tracking.
    """

    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._lock = threading.Lock()
        self._state = TransportMetrics()

        self._c_accepted: Any | None = None
        self._c_dropped: Any | None = None
        self._c_sent: Any | None = None
        self._c_batches: Any | None = None
        self._c_failures: Any | None = None
        self._c_retries: Any | None = None
        self._h_flush_latency: Any | None = None
        self._registry: CollectorRegistry | None = None

        if self._enabled:
            # Isolated registry to avoid global duplication across instances
            self._registry = CollectorRegistry()
            self._c_accepted = Counter(
                "shiplog_events_accepted_total",
                "Events accepted into the batch",
                registry=self._registry,
            )
            self._c_dropped = Counter(
                "shiplog_events_dropped_total",
                "Events discarded without delivery",
                ["reason"],
                registry=self._registry,
            )
            self._c_sent = Counter(
                "shiplog_events_sent_total",
                "Events delivered to the ingestion endpoint",
                registry=self._registry,
            )
            self._c_batches = Counter(
                "shiplog_batches_sent_total",
                "Batches delivered to the ingestion endpoint",
                registry=self._registry,
            )
            self._c_failures = Counter(
                "shiplog_send_failures_total",
                "Failed delivery attempts",
                registry=self._registry,
            )
            self._c_retries = Counter(
                "shiplog_retries_scheduled_total",
                "Failed batches whose tail was requeued",
                registry=self._registry,
            )
            self._h_flush_latency = Histogram(
                "shiplog_flush_seconds",
                "Latency of one flush (encode + deliver)",
                buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        """Expose the isolated Prometheus registry when enabled."""
        return self._registry

    def record_event_accepted(self) -> None:
        with self._lock:
            self._state.events_accepted += 1
        if self._c_accepted is not None:
            self._c_accepted.inc()

    def record_events_dropped(self, count: int, *, reason: str = "unknown") -> None:
        if count <= 0:
            return
        with self._lock:
            self._state.events_dropped += count
        if self._c_dropped is not None:
            self._c_dropped.labels(reason=reason).inc(count)

    def record_batch_sent(
        self, *, batch_size: int, latency_seconds: float | None = None
    ) -> None:
        with self._lock:
            self._state.batches_sent += 1
            self._state.events_sent += batch_size
        if self._c_batches is not None:
            self._c_batches.inc()
        if self._c_sent is not None:
            self._c_sent.inc(batch_size)
        if latency_seconds is not None and self._h_flush_latency is not None:
            self._h_flush_latency.observe(latency_seconds)

    def record_send_failure(self) -> None:
        with self._lock:
            self._state.send_failures += 1
        if self._c_failures is not None:
            self._c_failures.inc()

    def record_retry_scheduled(self) -> None:
        with self._lock:
            self._state.retries_scheduled += 1
        if self._c_retries is not None:
            self._c_retries.inc()

    def snapshot(self) -> TransportMetrics:
        # Lightweight copy without exposing internals
        with self._lock:
            return replace(self._state)
