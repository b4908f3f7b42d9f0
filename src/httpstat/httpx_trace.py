"""Attach a timing result to httpx requests.

httpx reports connection and request progress through the per-request
``trace`` extension as ``"<prefix>.<step>.<status>"`` events, where status is
``started``, ``complete`` or ``failed``. ``HttpxTracer`` turns those events
into ``Result`` recorder calls.

httpcore resolves host names inside ``connect_tcp`` and fires no separate DNS
event, so name resolution is counted in ``tcp_connection`` and
``dns_lookup`` reads zero. Pooled connections fire no connect events at all;
with ``infer_reuse`` enabled a request whose headers go out before any
connect was seen is recorded as reused.

Example:
    >>> result = Result()
    >>> with httpx.Client() as client:
    ...     response = client.get(url, extensions=with_httpstat(None, result))
    >>> result.mark_done()
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from .result import Result

logger = logging.getLogger(__name__)

TRACE_EXTENSION = "trace"

CONNECT_STEPS = frozenset({"connect_tcp", "connect_unix_socket"})

TraceCallback = Callable[[str, dict[str, Any]], None]
AsyncTraceCallback = Callable[[str, dict[str, Any]], Awaitable[None]]


def _split_event(event_name: str) -> tuple[str, str]:
    """Split ``"http11.send_request_body.complete"`` into step and status."""
    parts = event_name.split(".")
    if len(parts) < 3:
        return "", ""
    return parts[-2], parts[-1]


class HttpxTracer:
    """Sync ``trace`` extension callback feeding a ``Result``.

    Args:
        result: Timing result for this request
        infer_reuse: Treat a request sent without a preceding connect as
            running on a pooled connection
        chained: Existing trace callback to call after recording
    """

    def __init__(
        self,
        result: Result,
        infer_reuse: bool = True,
        chained: TraceCallback | None = None,
    ) -> None:
        self.result = result
        self.infer_reuse = infer_reuse
        self.chained = chained
        self._connect_seen = False

    def __call__(self, event_name: str, info: dict[str, Any]) -> None:
        self.record(event_name, info)
        if self.chained is not None:
            self.chained(event_name, info)

    def record(self, event_name: str, info: dict[str, Any]) -> None:
        """Translate one httpcore trace event into recorder calls."""
        step, status = _split_event(event_name)
        logger.debug(f"httpx trace event: {event_name}")
        error = info.get("exception") if status == "failed" else None

        if step in CONNECT_STEPS:
            if status == "started":
                self._connect_seen = True
                self.result.connect_start()
            else:
                self.result.connect_done(error)
        elif step == "start_tls":
            if status == "started":
                self.result.tls_handshake_start()
            else:
                self.result.tls_handshake_done(error)
        elif step == "send_request_headers" and status == "started":
            if self.infer_reuse and not self._connect_seen:
                self.result.got_conn(reused=True)
        elif step == "send_request_body" and status != "started":
            self.result.wrote_request(error)
        elif step == "receive_response_headers" and status == "complete":
            self.result.got_first_response_byte()


class AsyncHttpxTracer(HttpxTracer):
    """``trace`` callback for ``httpx.AsyncClient``, which requires a coroutine."""

    def __init__(
        self,
        result: Result,
        infer_reuse: bool = True,
        chained: AsyncTraceCallback | None = None,
    ) -> None:
        super().__init__(result, infer_reuse=infer_reuse)
        self.async_chained = chained

    async def __call__(self, event_name: str, info: dict[str, Any]) -> None:  # type: ignore[override]
        self.record(event_name, info)
        if self.async_chained is not None:
            await self.async_chained(event_name, info)


def with_httpstat(
    extensions: Mapping[str, Any] | None,
    result: Result,
    infer_reuse: bool = True,
) -> dict[str, Any]:
    """Return request extensions that record timings into ``result``.

    Pass the returned mapping as ``extensions=`` to a sync ``httpx.Client``
    request. A ``trace`` callback already present is still called.
    """
    new_extensions = dict(extensions or {})
    new_extensions[TRACE_EXTENSION] = HttpxTracer(
        result,
        infer_reuse=infer_reuse,
        chained=new_extensions.get(TRACE_EXTENSION),
    )
    return new_extensions


def with_httpstat_async(
    extensions: Mapping[str, Any] | None,
    result: Result,
    infer_reuse: bool = True,
) -> dict[str, Any]:
    """Async counterpart of ``with_httpstat`` for ``httpx.AsyncClient``."""
    new_extensions = dict(extensions or {})
    new_extensions[TRACE_EXTENSION] = AsyncHttpxTracer(
        result,
        infer_reuse=infer_reuse,
        chained=new_extensions.get(TRACE_EXTENSION),
    )
    return new_extensions
