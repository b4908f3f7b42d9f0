"""Pydantic data models for httpstat results.

Example:
    >>> from httpstat.models import Durations
    >>> Durations(total_ms=70.0).model_dump_json()
"""

from .durations import Durations

__all__ = ["Durations"]
