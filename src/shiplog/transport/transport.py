"""
Batching transport shipping log events to Parseable as OTLP logs.

Producers call :meth:`ParseableTransport.accept` from any thread; it only
appends to the shared batch under a lock and never waits on the network.
A private event loop on a background thread ("thread mode") hosts the
flush timer and every flush coroutine, so retry state is only ever touched
from that one thread.

Flush algorithm:

1. Drain the batch into a local snapshot under the lock (empty -> no-op).
2. Encode the snapshot as one OTLP logs document.
3. POST it once through the sender, with the sender's fixed timeout.
4. On success reset the attempt counter.
5. On failure count the attempt. Within ``max_retries`` the newest
   ``retry_tail_size`` events go back to the *front* of the batch;
   beyond it the snapshot is dropped and the counter resets.

Network I/O never holds the lock: new events keep accumulating while a
previous flush is in flight, and two flushes may be in flight at once
without ever sending the same event twice.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import threading
import time
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from ..core import diagnostics
from ..core.errors import ShiplogError
from ..core.events import LogEvent
from ..core.otlp import LogsEncoder
from ..core.settings import TransportConfig, parse_config
from ..core.shutdown import register_transport, unregister_transport
from ..core.stdlib_bridge import WORKER_THREAD_PREFIX
from ..metrics.metrics import MetricsCollector
from .http_client import BatchSender, ParseableHttpSender

_START_TIMEOUT_SECONDS = 5.0


@dataclass
class RetryState:
    """Consecutive failed delivery attempts since the last success."""

    attempt_count: int = 0

    def record_failure(self) -> int:
        self.attempt_count += 1
        return self.attempt_count

    def reset(self) -> None:
        self.attempt_count = 0


def _error_fields(exc: BaseException) -> dict[str, Any]:
    if isinstance(exc, ShiplogError):
        return exc.to_fields()
    return {"error_type": type(exc).__name__, "error": str(exc)}


class ParseableTransport:
    """Accepts :class:`LogEvent` objects and ships them in batches.

    Example:
        transport = ParseableTransport(
            TransportConfig(endpoint_url="https://logs.example.com", stream="app")
        )
        transport.start()
        transport.accept(LogEvent.create("INFO", "ready", port=8080))
        transport.close()
    """

    name = "parseable"

    def __init__(
        self,
        config: TransportConfig | Mapping[str, Any] | None = None,
        *,
        sender: BatchSender | None = None,
        metrics: MetricsCollector | None = None,
        encoder: LogsEncoder | None = None,
        **kwargs: Any,
    ) -> None:
        cfg = parse_config(TransportConfig, config, **kwargs)
        self._config = cfg
        self._metrics = metrics
        self._encoder = encoder or LogsEncoder(
            service_name=cfg.service_name,
            resource_attributes=dict(cfg.resource_attributes),
            scope_name=cfg.scope_name,
            scope_version=cfg.scope_version,
        )
        if sender is None:
            http_sender = ParseableHttpSender.from_config(cfg)
            if http_sender.config_error is not None:
                diagnostics.warn(
                    "config",
                    "invalid endpoint url; deliveries will fail",
                    endpoint=cfg.endpoint_url,
                    error=str(http_sender.config_error),
                )
            sender = http_sender
        self._sender = sender

        # _lock guards _batch and _closed; _state_lock serializes start/close
        self._lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._batch: list[LogEvent] = []
        self._closed = False
        self._retry = RetryState()

        self._worker_loop: asyncio.AbstractEventLoop | None = None
        self._worker_thread: threading.Thread | None = None
        self._timer_task: asyncio.Task[None] | None = None
        self._flush_tasks: set[asyncio.Task[bool]] = set()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def config(self) -> TransportConfig:
        return self._config

    @property
    def sender(self) -> BatchSender:
        return self._sender

    @property
    def metrics(self) -> MetricsCollector | None:
        return self._metrics

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._batch)

    @property
    def retry_state(self) -> RetryState:
        return RetryState(attempt_count=self._retry.attempt_count)

    @property
    def is_running(self) -> bool:
        loop = self._worker_loop
        return loop is not None and loop.is_running()

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the background loop and the flush timer. Idempotent.

        Waits until the sender has started (bounded by a few seconds).
        """
        fut = self._launch()
        if fut is None:
            return
        try:
            fut.result(timeout=_START_TIMEOUT_SECONDS)
        except Exception as exc:
            diagnostics.warn("transport", "start incomplete", **_error_fields(exc))

    def _launch(self) -> concurrent.futures.Future[None] | None:
        """Spin up the worker thread and schedule startup without waiting on it.

        Returns the startup future, or ``None`` when already started or closed.
        Coroutines scheduled before the loop runs are queued, so callers may
        hand work to the loop immediately.
        """
        with self._state_lock:
            if self._worker_loop is not None or self._closed:
                return None
            loop = asyncio.new_event_loop()

            def _run() -> None:
                asyncio.set_event_loop(loop)
                try:
                    loop.run_forever()
                finally:
                    try:
                        pending = asyncio.all_tasks(loop)
                        for task in pending:
                            task.cancel()
                        if pending:
                            loop.run_until_complete(
                                asyncio.gather(*pending, return_exceptions=True)
                            )
                    finally:
                        loop.close()

            thread = threading.Thread(
                target=_run,
                name=f"{WORKER_THREAD_PREFIX}{self._config.stream}",
                daemon=True,
            )
            fut = asyncio.run_coroutine_threadsafe(self._start_async(), loop)
            self._worker_loop = loop
            self._worker_thread = thread
            thread.start()
        register_transport(self)
        diagnostics.info(
            "transport",
            "initialized",
            stream=self._config.stream,
            endpoint=self._config.endpoint_url,
            batch_size=self._config.batch_size,
            flush_interval_ms=self._config.flush_interval_ms,
        )
        return fut

    async def _start_async(self) -> None:
        # Timer first: a slow sender start must not hold back timed flushes
        self._timer_task = asyncio.get_running_loop().create_task(self._run_timer())
        try:
            if hasattr(self._sender, "start"):
                await self._sender.start()
        except Exception as exc:
            diagnostics.warn("transport", "sender start failed", **_error_fields(exc))

    async def _run_timer(self) -> None:
        interval = self._config.flush_interval_seconds
        try:
            while True:
                await asyncio.sleep(interval)
                if self.pending_count:
                    self._spawn_flush()
        except asyncio.CancelledError:
            return

    def close(self, timeout: float | None = None) -> None:
        """Stop the timer, make one final delivery attempt, release resources.

        The final attempt does not requeue on failure: with the timer gone
        nothing would retry it. ``timeout`` defaults to twice the request
        timeout plus a few seconds; a delivery still in flight when it runs
        out is cancelled and its events are counted as shutdown drops.

        Idempotent and never raises.
        """
        with self._state_lock:
            with self._lock:
                if self._closed:
                    return
                self._closed = True
            loop, thread = self._worker_loop, self._worker_thread
            wait = timeout if timeout is not None else self._close_wait()
            if loop is not None and thread is not None:
                fut = asyncio.run_coroutine_threadsafe(self._shutdown_async(), loop)
                if threading.current_thread() is not thread:
                    try:
                        fut.result(timeout=wait)
                    except Exception as exc:
                        diagnostics.warn(
                            "transport", "close incomplete", **_error_fields(exc)
                        )
                    try:
                        loop.call_soon_threadsafe(loop.stop)
                    except RuntimeError:
                        pass  # loop already closed
                    thread.join(timeout=wait)
                    self._worker_loop = None
                    self._worker_thread = None
                else:
                    fut.add_done_callback(lambda _f: loop.stop())
            else:
                leftover = self._drain()
                if leftover:
                    self._record_dropped(len(leftover), "shutdown")
        unregister_transport(self)
        diagnostics.info("transport", "closed", stream=self._config.stream)

    async def _shutdown_async(self) -> None:
        timer, self._timer_task = self._timer_task, None
        if timer is not None:
            timer.cancel()
            await asyncio.gather(timer, return_exceptions=True)
        if self._flush_tasks:
            await asyncio.gather(*list(self._flush_tasks), return_exceptions=True)
        await self._flush(requeue=False)
        try:
            if hasattr(self._sender, "stop"):
                await self._sender.stop()
        except Exception as exc:
            diagnostics.warn("transport", "sender stop failed", **_error_fields(exc))

    def __enter__(self) -> ParseableTransport:
        self.start()
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def accept(self, event: LogEvent | Mapping[str, Any]) -> None:
        """Append one event to the batch. Never blocks on I/O, never raises."""
        try:
            if not isinstance(event, LogEvent):
                event = LogEvent.from_mapping(event)
            if self._worker_loop is None and not self._closed:
                self._launch()
            reason: str | None = None
            size = 0
            with self._lock:
                if self._closed:
                    reason = "closed"
                elif len(self._batch) >= self._config.max_queue_size:
                    reason = "queue_full"
                else:
                    self._batch.append(event)
                    size = len(self._batch)
            if reason is not None:
                self._record_dropped(1, reason)
                diagnostics.warn(
                    "transport",
                    "event dropped",
                    reason=reason,
                    _rate_limit_key=f"drop:{reason}",
                )
                return
            if self._metrics is not None:
                self._metrics.record_event_accepted()
            if size >= self._config.batch_size:
                self._schedule_flush()
        except Exception as exc:
            self._record_dropped(1, "invalid")
            diagnostics.warn(
                "transport",
                "accept failed; event dropped",
                _rate_limit_key="accept",
                **_error_fields(exc),
            )

    # ------------------------------------------------------------------
    # Flushing
    # ------------------------------------------------------------------

    def flush(self, timeout: float | None = None) -> bool:
        """Flush now and wait for the delivery attempt.

        Returns ``True`` when the drained batch was delivered (or there was
        nothing to send), ``False`` on failure or timeout.
        """
        loop = self._worker_loop
        if loop is None:
            if self._closed or not self.pending_count:
                return not self.pending_count
            self.start()
            loop = self._worker_loop
            if loop is None:
                return False
        if threading.current_thread() is self._worker_thread:
            # Blocking here would deadlock the loop
            loop.call_soon(self._spawn_flush)
            return False
        try:
            fut = asyncio.run_coroutine_threadsafe(self._flush(), loop)
            return bool(
                fut.result(timeout=timeout if timeout is not None else self._default_wait())
            )
        except concurrent.futures.TimeoutError:
            diagnostics.warn("transport", "flush wait timed out")
            return False
        except Exception as exc:
            diagnostics.warn("transport", "flush failed", **_error_fields(exc))
            return False

    async def flush_async(self) -> bool:
        """Awaitable :meth:`flush` for callers running their own event loop."""
        loop = self._worker_loop
        if loop is None:
            if self._closed or not self.pending_count:
                return not self.pending_count
            await asyncio.to_thread(self.start)
            loop = self._worker_loop
            if loop is None:
                return False
        if asyncio.get_running_loop() is loop:
            return await self._flush()
        fut = asyncio.run_coroutine_threadsafe(self._flush(), loop)
        return bool(await asyncio.wrap_future(fut))

    def _default_wait(self) -> float:
        return self._config.request_timeout_seconds + _START_TIMEOUT_SECONDS

    def _close_wait(self) -> float:
        # Room for an in-flight flush plus the final one, each one request long
        return 2 * self._config.request_timeout_seconds + _START_TIMEOUT_SECONDS

    def _schedule_flush(self) -> None:
        loop = self._worker_loop
        if loop is None:
            return
        try:
            loop.call_soon_threadsafe(self._spawn_flush)
        except RuntimeError:
            pass  # loop closed during shutdown

    def _spawn_flush(self) -> None:
        task = asyncio.get_running_loop().create_task(self._flush())
        self._flush_tasks.add(task)
        task.add_done_callback(self._flush_tasks.discard)

    def _drain(self) -> tuple[LogEvent, ...]:
        with self._lock:
            snapshot, self._batch = self._batch, []
        return tuple(snapshot)

    async def _flush(self, *, requeue: bool = True) -> bool:
        snapshot = self._drain()
        if not snapshot:
            return True
        start = time.perf_counter()
        try:
            payload = self._encoder.encode(snapshot)
        except Exception as exc:
            self._record_dropped(len(snapshot), "encoding")
            diagnostics.warn(
                "transport",
                "batch encoding failed; batch dropped",
                count=len(snapshot),
                **_error_fields(exc),
            )
            return False
        try:
            await self._sender.send(payload)
        except asyncio.CancelledError:
            self._record_dropped(len(snapshot), "shutdown")
            diagnostics.warn(
                "transport",
                "delivery cancelled at shutdown; batch dropped",
                count=len(snapshot),
            )
            raise
        except Exception as exc:
            self._handle_failure(snapshot, exc, requeue=requeue)
            return False
        self._retry.reset()
        if self._metrics is not None:
            self._metrics.record_batch_sent(
                batch_size=len(snapshot),
                latency_seconds=time.perf_counter() - start,
            )
        diagnostics.info(
            "transport",
            "batch sent",
            count=len(snapshot),
            stream=self._config.stream,
        )
        return True

    def _handle_failure(
        self,
        snapshot: Sequence[LogEvent],
        exc: BaseException,
        *,
        requeue: bool,
    ) -> None:
        attempt = self._retry.record_failure()
        max_retries = self._config.max_retries
        if self._metrics is not None:
            self._metrics.record_send_failure()
        diagnostics.warn(
            "transport",
            "failed to send batch",
            count=len(snapshot),
            stream=self._config.stream,
            attempt=attempt,
            max_retries=max_retries,
            **_error_fields(exc),
        )
        if not requeue:
            self._record_dropped(len(snapshot), "shutdown")
            diagnostics.warn(
                "transport", "final flush failed; batch dropped", count=len(snapshot)
            )
            return
        if attempt > max_retries:
            self._retry.reset()
            self._record_dropped(len(snapshot), "retries_exhausted")
            diagnostics.warn(
                "transport",
                "retries exhausted; batch dropped",
                count=len(snapshot),
                attempts=attempt,
            )
            return

        tail_size = self._config.retry_tail_size
        tail = list(snapshot[-tail_size:]) if tail_size > 0 else []
        with self._lock:
            room = self._config.max_queue_size - len(self._batch)
            if len(tail) > room:
                tail = tail[len(tail) - room :] if room > 0 else []
            self._batch[0:0] = tail
        self._record_dropped(len(snapshot) - len(tail), "retry_trimmed")
        if self._metrics is not None:
            self._metrics.record_retry_scheduled()
        diagnostics.info(
            "transport",
            "retry scheduled",
            attempt=attempt,
            max_retries=max_retries,
            requeued=len(tail),
        )

    def _record_dropped(self, count: int, reason: str) -> None:
        if self._metrics is not None and count > 0:
            self._metrics.record_events_dropped(count, reason=reason)

    def __repr__(self) -> str:
        return (
            f"ParseableTransport(stream={self._config.stream!r}, "
            f"endpoint={self._config.endpoint_url!r}, pending={self.pending_count})"
        )
