"""Attach a timing result to aiohttp requests.

A single ``TraceConfig`` from ``make_trace_config`` is registered on the
``ClientSession``; each request opts in by carrying its ``Result`` in
``trace_request_ctx`` (see ``with_httpstat``). Requests without one are
ignored by the handlers.

aiohttp negotiates TLS inside connection creation and exposes no separate
handshake hook, so ``tls_handshake`` reads zero and the handshake is counted
in ``tcp_connection``.

Name resolution runs inside connection creation: ``on_connection_create_start``
fires before any DNS hook. The connect phase therefore starts when
resolution ends (``on_dns_resolvehost_end``), after a DNS cache hit, or, when
no DNS hook fires at all (IP literals), at the instant connection creation
began. This keeps DNS time out of ``tcp_connection``.

Example:
    >>> session = aiohttp.ClientSession(trace_configs=[make_trace_config()])
    >>> result = Result()
    >>> async with session.get(url, **with_httpstat({}, result)) as resp:
    ...     await resp.read()
    >>> result.mark_done()
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from aiohttp import TraceConfig

from .phases import Mark
from .result import Result

if TYPE_CHECKING:
    from types import SimpleNamespace

    from aiohttp import (
        ClientSession,
        TraceConnectionCreateEndParams,
        TraceConnectionCreateStartParams,
        TraceConnectionReuseconnParams,
        TraceDnsCacheHitParams,
        TraceDnsResolveHostEndParams,
        TraceDnsResolveHostStartParams,
        TraceRequestChunkSentParams,
        TraceRequestEndParams,
        TraceRequestExceptionParams,
        TraceRequestHeadersSentParams,
    )

logger = logging.getLogger(__name__)

CONTEXT_KEY = "httpstat"

# Set on the per-request trace_config_ctx between connection create start and
# the point where the connect phase is known to begin.
PENDING_CONNECT_ATTR = "httpstat_connect_pending"


def _result_for(trace_config_ctx: SimpleNamespace) -> Result | None:
    request_ctx = getattr(trace_config_ctx, "trace_request_ctx", None)
    if not isinstance(request_ctx, Mapping):
        return None
    result = request_ctx.get(CONTEXT_KEY)
    return result if isinstance(result, Result) else None


def make_trace_config() -> TraceConfig:
    """Build a ``TraceConfig`` that records into per-request results."""
    trace_config = TraceConfig()
    trace_config.on_connection_create_start.append(on_connection_create_start)
    trace_config.on_dns_cache_hit.append(on_dns_cache_hit)
    trace_config.on_dns_resolvehost_start.append(on_dns_resolvehost_start)
    trace_config.on_dns_resolvehost_end.append(on_dns_resolvehost_end)
    trace_config.on_connection_create_end.append(on_connection_create_end)
    trace_config.on_connection_reuseconn.append(on_connection_reuseconn)
    trace_config.on_request_headers_sent.append(on_request_headers_sent)
    trace_config.on_request_chunk_sent.append(on_request_chunk_sent)
    trace_config.on_request_end.append(on_request_end)
    trace_config.on_request_exception.append(on_request_exception)
    return trace_config


def with_httpstat(request_kwargs: Mapping[str, Any] | None, result: Result) -> dict[str, Any]:
    """Return request keyword arguments carrying ``result`` for the trace hooks.

    Any existing ``trace_request_ctx`` mapping is preserved alongside it.
    """
    new_kwargs = dict(request_kwargs or {})
    request_ctx = dict(new_kwargs.get("trace_request_ctx") or {})
    request_ctx[CONTEXT_KEY] = result
    new_kwargs["trace_request_ctx"] = request_ctx
    return new_kwargs


def _commit_connect_start(trace_config_ctx: SimpleNamespace, result: Result, now: int) -> None:
    # Connect starts once, at the first point we know resolution is over.
    if getattr(trace_config_ctx, PENDING_CONNECT_ATTR, None) is None:
        return
    setattr(trace_config_ctx, PENDING_CONNECT_ATTR, None)
    result.connect_start(now)


async def on_connection_create_start(  # noqa: RUF029
    _session: ClientSession,
    trace_config_ctx: SimpleNamespace,
    _params: TraceConnectionCreateStartParams,
) -> None:
    """Remember when connection creation began.

    Name resolution happens inside connection creation, so the connect phase
    is only committed once it is known whether DNS hooks follow.
    """
    result = _result_for(trace_config_ctx)
    if result is not None:
        setattr(trace_config_ctx, PENDING_CONNECT_ATTR, result.now())


async def on_dns_cache_hit(  # noqa: RUF029
    _session: ClientSession,
    trace_config_ctx: SimpleNamespace,
    _params: TraceDnsCacheHitParams,
) -> None:
    """Start the connect phase right after a cached lookup."""
    result = _result_for(trace_config_ctx)
    if result is not None:
        _commit_connect_start(trace_config_ctx, result, result.now())


async def on_dns_resolvehost_start(  # noqa: RUF029
    _session: ClientSession,
    trace_config_ctx: SimpleNamespace,
    _params: TraceDnsResolveHostStartParams,
) -> None:
    """Record the start of name resolution."""
    result = _result_for(trace_config_ctx)
    if result is not None:
        result.dns_start()


async def on_dns_resolvehost_end(  # noqa: RUF029
    _session: ClientSession,
    trace_config_ctx: SimpleNamespace,
    _params: TraceDnsResolveHostEndParams,
) -> None:
    """Record the end of name resolution; connecting starts at the same instant."""
    result = _result_for(trace_config_ctx)
    if result is None:
        return
    result.dns_done()
    dns_done = result.timestamp(Mark.DNS_DONE)
    if dns_done is not None:
        _commit_connect_start(trace_config_ctx, result, dns_done)


async def on_connection_create_end(  # noqa: RUF029
    _session: ClientSession,
    trace_config_ctx: SimpleNamespace,
    _params: TraceConnectionCreateEndParams,
) -> None:
    """Record that the new connection (including TLS) is ready.

    With no DNS hook in between (IP literal), connect started when
    connection creation did.
    """
    result = _result_for(trace_config_ctx)
    if result is None:
        return
    pending = getattr(trace_config_ctx, PENDING_CONNECT_ATTR, None)
    if pending is not None:
        _commit_connect_start(trace_config_ctx, result, pending)
    result.connect_done()


async def on_connection_reuseconn(  # noqa: RUF029
    _session: ClientSession,
    trace_config_ctx: SimpleNamespace,
    _params: TraceConnectionReuseconnParams,
) -> None:
    """Record that a pooled connection was handed out."""
    result = _result_for(trace_config_ctx)
    if result is not None:
        result.got_conn(reused=True)


async def on_request_headers_sent(  # noqa: RUF029
    _session: ClientSession,
    trace_config_ctx: SimpleNamespace,
    _params: TraceRequestHeadersSentParams,
) -> None:
    """Record the request as written once headers are out."""
    result = _result_for(trace_config_ctx)
    if result is not None:
        result.wrote_request()


async def on_request_chunk_sent(  # noqa: RUF029
    _session: ClientSession,
    trace_config_ctx: SimpleNamespace,
    _params: TraceRequestChunkSentParams,
) -> None:
    """Move the request-written instant to the latest body chunk."""
    result = _result_for(trace_config_ctx)
    if result is not None:
        result.wrote_request()


async def on_request_end(  # noqa: RUF029
    _session: ClientSession,
    trace_config_ctx: SimpleNamespace,
    _params: TraceRequestEndParams,
) -> None:
    """Record the first response byte; aiohttp fires this once headers arrive."""
    result = _result_for(trace_config_ctx)
    if result is not None:
        result.got_first_response_byte()


async def on_request_exception(  # noqa: RUF029
    _session: ClientSession,
    trace_config_ctx: SimpleNamespace,
    params: TraceRequestExceptionParams,
) -> None:
    """Log transport failures; interpreting them is left to the caller."""
    if _result_for(trace_config_ctx) is not None:
        logger.debug(f"aiohttp request to {params.url} failed: {params.exception!r}")
