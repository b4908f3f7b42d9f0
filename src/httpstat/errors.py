"""Errors raised by httpstat.

The timing core itself never raises: degraded event sequences fall back to
zero-valued durations. These exceptions cover the surrounding plumbing.
"""


class HttpstatError(Exception):
    """Base exception for httpstat errors."""


class ConfigError(HttpstatError):
    """Raised when an httpstat config file cannot be loaded."""
