"""
Testing utilities for code that ships logs through shiplog.

Stub senders and event factories are always importable. Pytest fixtures
live in ``shiplog.testing.fixtures`` and need the test extra
(`pip install shiplog[test]`).

Example:
    from shiplog import ParseableTransport
    from shiplog.testing import RecordingSender

    def test_ships():
        sender = RecordingSender()
        with ParseableTransport(sender=sender) as transport:
            transport.accept({"level": "info", "message": "hi"})
        assert sender.messages() == ["hi"]
"""

from .factories import create_batch_events, create_log_event
from .mocks import GatedSender, RecordingSender

__all__ = [
    "GatedSender",
    "RecordingSender",
    "create_batch_events",
    "create_log_event",
]
