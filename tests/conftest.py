"""Shared test fixtures for httpstat tests."""

import threading
from collections.abc import Generator
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from httpstat import Result


class FakeClock:
    """Manually advanced nanosecond clock."""

    def __init__(self, start_ns: int = 0) -> None:
        self.now_ns = start_ns

    def __call__(self) -> int:
        return self.now_ns

    def advance(self, ms: int) -> None:
        self.now_ns += ms * 1_000_000


@pytest.fixture
def clock() -> FakeClock:
    """Create a fake clock starting at zero."""
    return FakeClock()


@pytest.fixture
def result(clock: FakeClock) -> Result:
    """Create a result driven by the fake clock."""
    return Result(clock=clock)


class _HelloHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    def do_GET(self) -> None:  # noqa: N802
        body = b"hello"
        self.send_response(200)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        pass


@pytest.fixture
def http_server() -> Generator[str, None, None]:
    """Serve a keep-alive HTTP/1.1 endpoint on 127.0.0.1.

    Yields the base URL. The host is an IP literal, so clients skip DNS.
    """
    server = ThreadingHTTPServer(("127.0.0.1", 0), _HelloHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        host, port = server.server_address[:2]
        yield f"http://{host}:{port}/"
    finally:
        server.shutdown()
        server.server_close()
