"""
Root pytest configuration.
"""

from __future__ import annotations

import os
from collections.abc import Generator

import pytest


# Register shiplog testing fixtures for all tests
pytest_plugins = ("shiplog.testing.fixtures",)


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "critical: Tests that must never fail - core functionality",
    )
    config.addinivalue_line(
        "markers",
        "security: Security-critical tests (auth, secrets)",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests exercising several components together",
    )
    config.addinivalue_line(
        "markers",
        "slow: Tests that take >1 second",
    )
    config.addinivalue_line(
        "markers",
        "property: Property-based tests (may be slow)",
    )


@pytest.fixture(autouse=True)
def reset_diagnostics_cache() -> Generator[None, None, None]:
    """Reset the diagnostics module cache before each test.

    Diagnostics cache ``internal_logging_enabled`` at first access; each
    test starts from a clean cache and rate-limit history.
    """
    import shiplog.core.diagnostics as diag

    diag._internal_logging_enabled = None
    diag._diagnostics_level = None
    diag._reset_rate_limits()
    yield
    diag._internal_logging_enabled = None
    diag._diagnostics_level = None
    diag.set_writer(None)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep deployment variables from leaking into settings under test."""
    for name in list(os.environ):
        if name.startswith(("SHIPLOG_", "PARSEABLE_")):
            monkeypatch.delenv(name, raising=False)
