"""
Package version.

Hatch reads ``__version__`` from this module at build time, so it is the
single place to bump when cutting a release.
"""

__version__ = "0.1.0"
