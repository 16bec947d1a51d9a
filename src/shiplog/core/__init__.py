"""Core building blocks: events, levels, settings, encoding and diagnostics."""
