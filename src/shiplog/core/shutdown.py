"""Best-effort close of live transports at interpreter exit.

Transports register themselves when started and unregister when closed.
A WeakSet keeps the registry from holding transports alive. The atexit
hook closes whatever is still registered, each bounded by
``core.atexit_close_timeout_seconds``; it never raises.
"""

from __future__ import annotations

import atexit
import weakref
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..transport.transport import ParseableTransport

_shutdown_in_progress: bool = False
_registered_transports: weakref.WeakSet[Any] = weakref.WeakSet()


def _get_shutdown_settings() -> dict[str, Any]:
    """Get shutdown settings from Settings, with fallback defaults."""
    try:
        from .settings import Settings

        settings = Settings()
        return {
            "atexit_close_enabled": settings.core.atexit_close_enabled,
            "atexit_close_timeout_seconds": settings.core.atexit_close_timeout_seconds,
        }
    except Exception:  # pragma: no cover
        return {
            "atexit_close_enabled": True,
            "atexit_close_timeout_seconds": 5.0,
        }


def register_transport(transport: ParseableTransport) -> None:
    _registered_transports.add(transport)


def unregister_transport(transport: ParseableTransport) -> None:
    _registered_transports.discard(transport)


def registered_transports() -> list[Any]:
    return list(_registered_transports)


def _atexit_handler() -> None:
    global _shutdown_in_progress

    if _shutdown_in_progress:
        return
    settings = _get_shutdown_settings()
    if not settings["atexit_close_enabled"]:
        return
    _shutdown_in_progress = True
    timeout = settings["atexit_close_timeout_seconds"]

    # Snapshot first; WeakSet iteration can fail if GC runs
    try:
        transports = list(_registered_transports)
    except Exception:  # pragma: no cover - rare GC race
        return
    for transport in transports:
        try:
            transport.close(timeout=timeout)
        except Exception:
            pass  # Best effort - don't crash on exit


atexit.register(_atexit_handler)
