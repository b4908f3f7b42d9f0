"""Timing breakdown of a single HTTP request.

A ``Result`` records transport lifecycle events (DNS, connect, TLS, request
written, first response byte) and derives phase and cumulative durations.
Adapters bind it to a transport:

- ``httpstat.httpx_trace``: httpx ``trace`` request extension
- ``httpstat.aiohttp_trace``: aiohttp ``TraceConfig`` hooks

Example:
    >>> import httpx
    >>> from httpstat import Result, with_httpstat
    >>> result = Result()
    >>> with httpx.Client() as client:
    ...     response = client.get("https://example.com", extensions=with_httpstat(None, result))
    >>> result.mark_done()
    >>> result.snapshot().model_dump_json()
"""

from .config import HttpstatConfig, load_config, write_config_template
from .errors import ConfigError, HttpstatError
from .httpx_trace import with_httpstat, with_httpstat_async
from .models import Durations
from .phases import Mark, Phase
from .result import Result

__all__ = [
    "ConfigError",
    "Durations",
    "HttpstatConfig",
    "HttpstatError",
    "Mark",
    "Phase",
    "Result",
    "load_config",
    "with_httpstat",
    "with_httpstat_async",
    "write_config_template",
]
