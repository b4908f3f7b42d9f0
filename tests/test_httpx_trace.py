"""Tests for the httpx trace adapter."""

from datetime import timedelta
from typing import Any
from unittest.mock import MagicMock

import httpx
import pytest

from httpstat import Mark, Phase, Result, with_httpstat, with_httpstat_async
from httpstat.httpx_trace import AsyncHttpxTracer, HttpxTracer

from conftest import FakeClock

MS = 1_000_000


def feed(tracer: HttpxTracer, clock: FakeClock, events: list[tuple[str, int]]) -> None:
    """Send (event name, ms advanced before it) pairs to a tracer."""
    for name, gap in events:
        clock.advance(gap)
        tracer(name, {})


@pytest.mark.unit
class TestHttpxTracer:
    """Event translation with synthetic httpcore events."""

    def test_fresh_https_connection(self, clock: FakeClock, result: Result) -> None:
        tracer = HttpxTracer(result)
        feed(
            tracer,
            clock,
            [
                ("connection.connect_tcp.started", 0),
                ("connection.connect_tcp.complete", 20),
                ("connection.start_tls.started", 0),
                ("connection.start_tls.complete", 30),
                ("http11.send_request_headers.started", 0),
                ("http11.send_request_headers.complete", 1),
                ("http11.send_request_body.started", 0),
                ("http11.send_request_body.complete", 1),
                ("http11.receive_response_headers.started", 0),
                ("http11.receive_response_headers.complete", 40),
                ("http11.receive_response_body.started", 0),
                ("http11.receive_response_body.complete", 5),
            ],
        )

        assert result.is_tls is True
        assert result.is_reused is False
        assert result.dns_lookup == timedelta(0)
        assert result.tcp_connection == timedelta(milliseconds=20)
        assert result.tls_handshake == timedelta(milliseconds=30)
        assert result.pretransfer == timedelta(milliseconds=50)
        assert result.server_processing == timedelta(milliseconds=40)
        assert result.phase is Phase.TRANSFERRING

    def test_pooled_connection_inferred(self, clock: FakeClock, result: Result) -> None:
        """Headers sent with no connect event mean a reused connection."""
        tracer = HttpxTracer(result)
        feed(
            tracer,
            clock,
            [
                ("http2.send_request_headers.started", 10),
                ("http2.send_request_body.complete", 1),
                ("http2.receive_response_headers.complete", 9),
            ],
        )
        assert result.is_reused is True
        assert result.timestamp(Mark.TLS_DONE) == 11 * MS
        assert result.server_processing == timedelta(milliseconds=9)

    def test_infer_reuse_disabled(self, clock: FakeClock, result: Result) -> None:
        tracer = HttpxTracer(result, infer_reuse=False)
        feed(tracer, clock, [("http11.send_request_headers.started", 0)])
        assert result.is_reused is False

    def test_failed_connect_passes_error(self) -> None:
        result = MagicMock(spec=Result)
        tracer = HttpxTracer(result)
        error = httpx.ConnectError("refused")
        tracer("connection.connect_tcp.started", {"host": "127.0.0.1", "port": 1})
        tracer("connection.connect_tcp.failed", {"exception": error})
        result.connect_start.assert_called_once_with()
        result.connect_done.assert_called_once_with(error)

    def test_unknown_events_ignored(self, result: Result) -> None:
        tracer = HttpxTracer(result)
        tracer("http11.response_closed.complete", {})
        tracer("malformed", {})
        assert result.phase is Phase.IDLE

    def test_chained_callback_called(self, result: Result) -> None:
        seen: list[str] = []

        def existing(name: str, info: dict[str, Any]) -> None:
            seen.append(name)

        extensions = with_httpstat({"trace": existing, "timeout": {"read": 1.0}}, result)
        extensions["trace"]("connection.connect_tcp.started", {})
        assert seen == ["connection.connect_tcp.started"]
        assert extensions["timeout"] == {"read": 1.0}
        assert result.phase is Phase.CONNECTING

    def test_with_httpstat_does_not_mutate_input(self, result: Result) -> None:
        original: dict[str, Any] = {}
        extensions = with_httpstat(original, result)
        assert original == {}
        assert isinstance(extensions["trace"], HttpxTracer)


@pytest.mark.unit
class TestAsyncHttpxTracer:
    """The async tracer returns a coroutine, as AsyncClient requires."""

    @pytest.mark.asyncio
    async def test_records_and_chains(self, clock: FakeClock, result: Result) -> None:
        seen: list[str] = []

        async def existing(name: str, info: dict[str, Any]) -> None:
            seen.append(name)

        extensions = with_httpstat_async({"trace": existing}, result)
        tracer = extensions["trace"]
        assert isinstance(tracer, AsyncHttpxTracer)
        await tracer("connection.connect_tcp.started", {})
        clock.advance(3)
        await tracer("connection.connect_tcp.complete", {})
        assert seen == ["connection.connect_tcp.started", "connection.connect_tcp.complete"]
        assert result.connect == timedelta(milliseconds=3)


@pytest.mark.integration
class TestHttpxClient:
    """Real requests against a local keep-alive server."""

    def test_fresh_then_reused(self, http_server: str) -> None:
        with httpx.Client() as client:
            first = Result()
            response = client.get(http_server, extensions=with_httpstat(None, first))
            assert response.text == "hello"
            first.mark_done()

            second = Result()
            response = client.get(http_server, extensions=with_httpstat(None, second))
            assert response.text == "hello"
            second.mark_done()

        # 127.0.0.1 is an IP literal: DNS is backfilled to connect start.
        assert first.is_reused is False
        assert first.is_tls is False
        assert first.dns_lookup == timedelta(0)
        assert first.connect == first.tcp_connection
        assert first.pretransfer == first.connect
        assert first.phase is Phase.DONE
        assert first.total >= first.start_transfer >= first.connect

        assert second.is_reused is True
        assert second.tcp_connection == timedelta(0)
        assert second.timestamp(Mark.DNS_START) == second.timestamp(Mark.SERVER_START)
        assert second.phase is Phase.DONE

    @pytest.mark.asyncio
    async def test_async_client(self, http_server: str) -> None:
        result = Result()
        async with httpx.AsyncClient() as client:
            response = await client.get(http_server, extensions=with_httpstat_async(None, result))
            await response.aread()
        result.mark_done()

        assert response.status_code == 200
        assert result.is_reused is False
        assert result.timestamp(Mark.TCP_START) is not None
        assert result.phase is Phase.DONE
        assert all(d >= timedelta(0) for d in result.durations().values())
