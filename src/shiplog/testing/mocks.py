"""
Stub senders for exercising transports without a network.
"""

from __future__ import annotations

import asyncio
import json
import threading
from typing import Any

from ..core.errors import DeliveryError
from ..core.otlp import attributes_as_dict, iter_log_records


class RecordingSender:
    """Sender that records payloads and replays scripted outcomes.

    ``outcomes`` is consumed one entry per ``send``: ``None`` means success,
    an exception instance is raised, an ``int`` is treated as an HTTP status
    (2xx succeeds, anything else raises :class:`DeliveryError`). Once the
    script runs out every send succeeds.
    """

    name = "recording"

    def __init__(self, outcomes: list[Any] | None = None) -> None:
        self.outcomes: list[Any] = list(outcomes or [])
        self.payloads: list[bytes] = []
        self.started = False
        self.stopped = False
        self._lock = threading.Lock()

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def send(self, payload: bytes) -> None:
        with self._lock:
            self.payloads.append(bytes(payload))
            outcome = self.outcomes.pop(0) if self.outcomes else None
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, int) and not 200 <= outcome < 300:
            raise DeliveryError(f"HTTP {outcome}", status_code=outcome)

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.payloads)

    def documents(self) -> list[dict[str, Any]]:
        with self._lock:
            return [json.loads(p) for p in self.payloads]

    def records(self, call: int = -1) -> list[dict[str, Any]]:
        """Decoded log records of one recorded call."""
        return iter_log_records(self.documents()[call])

    def messages(self, call: int = -1) -> list[str]:
        return [r["body"]["stringValue"] for r in self.records(call)]

    def attributes(self, call: int = -1) -> list[dict[str, str]]:
        return [attributes_as_dict(r) for r in self.records(call)]


class GatedSender(RecordingSender):
    """RecordingSender whose sends block until :meth:`release` is called.

    ``entered`` is set as soon as a send starts, so a test can act while
    the delivery is in flight.
    """

    name = "gated"

    def __init__(self, outcomes: list[Any] | None = None) -> None:
        super().__init__(outcomes)
        self.entered = threading.Event()
        self._gate = threading.Event()

    def release(self) -> None:
        self._gate.set()

    async def send(self, payload: bytes) -> None:
        self.entered.set()
        while not self._gate.is_set():
            await asyncio.sleep(0.005)
        await super().send(payload)
