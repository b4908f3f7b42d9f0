"""Timing state and event recorder for a single HTTP request attempt.

A ``Result`` is created per request attempt and handed to a transport adapter
(see ``httpstat.httpx_trace`` and ``httpstat.aiohttp_trace``). The adapter
calls one recorder method per lifecycle boundary; each call stamps the
current clock reading and updates the derived durations. Phases the transport
never reports are backfilled from ``httpstat.phases`` so cumulative durations
stay meaningful.

Example:
    >>> result = Result()
    >>> # ... attach to a request and read the body ...
    >>> result.mark_done()
    >>> result.total
"""

import logging
import time
from collections.abc import Callable
from datetime import timedelta

from .models import Durations
from .phases import NO_DNS, PHASE_BY_MARK, REUSED, UNINSTRUMENTED, Backfill, Mark, Phase
from .rwlock import ReadWriteLock

logger = logging.getLogger(__name__)

Clock = Callable[[], int]

DURATION_NAMES = (
    "dns_lookup",
    "tcp_connection",
    "tls_handshake",
    "server_processing",
    "content_transfer",
    "name_lookup",
    "connect",
    "pretransfer",
    "start_transfer",
    "total",
)


def _span(start: int | None, end: int | None) -> int:
    """Nanoseconds from start to end, or 0 if either is unset or end < start."""
    if start is None or end is None or end < start:
        return 0
    return end - start


def _to_timedelta(ns: int) -> timedelta:
    return timedelta(microseconds=ns / 1000)


def _duration_property(name: str, doc: str) -> property:
    def getter(self: "Result") -> timedelta:
        with self._lock.read():
            return _to_timedelta(self._durations[name])

    return property(getter, doc=doc)


class Result:
    """Raw phase timestamps and derived durations for one request attempt.

    Timestamps are integer nanoseconds from ``clock`` (``time.perf_counter_ns``
    unless given). Derived durations are read-only ``timedelta`` properties
    and read as zero until the hooks they depend on have fired.

    Writes are expected from whatever threads or tasks the transport uses;
    every access goes through one reader/writer lock. A ``Result`` must not be
    shared between requests or reused after ``mark_done``.
    """

    def __init__(self, clock: Clock = time.perf_counter_ns) -> None:
        self._clock = clock
        self._lock = ReadWriteLock()
        self._marks: dict[Mark, int | None] = dict.fromkeys(Mark)
        self._durations: dict[str, int] = dict.fromkeys(DURATION_NAMES, 0)
        self._is_tls = False
        self._is_reused = False

    dns_lookup = _duration_property("dns_lookup", "Name resolution time.")
    name_lookup = _duration_property("name_lookup", "Cumulative time through DNS.")
    tcp_connection = _duration_property("tcp_connection", "Transport connect time.")
    tls_handshake = _duration_property("tls_handshake", "TLS handshake time.")
    server_processing = _duration_property(
        "server_processing", "Request written to first response byte."
    )
    content_transfer = _duration_property(
        "content_transfer", "First response byte to body consumed; set by mark_done."
    )
    connect = _duration_property("connect", "Cumulative time through connect.")
    pretransfer = _duration_property(
        "pretransfer", "Cumulative time through the TLS handshake, or connect if plaintext."
    )
    start_transfer = _duration_property(
        "start_transfer", "Cumulative time through the first response byte."
    )
    total = _duration_property("total", "Cumulative time through body consumed; set by mark_done.")

    @property
    def is_tls(self) -> bool:
        with self._lock.read():
            return self._is_tls

    @property
    def is_reused(self) -> bool:
        with self._lock.read():
            return self._is_reused

    @property
    def phase(self) -> Phase:
        """Furthest phase reached, judged from the marks set so far."""
        with self._lock.read():
            for mark, phase in PHASE_BY_MARK:
                if self._marks[mark] is not None:
                    return phase
            return Phase.IDLE

    def now(self) -> int:
        """Current reading of the clock this result stamps with."""
        return self._clock()

    def timestamp(self, mark: Mark) -> int | None:
        """Raw clock reading for a mark, or None if it was never set."""
        with self._lock.read():
            return self._marks[mark]

    # Event recorder. Each hook stamps the clock inside the write lock so
    # concurrent hooks land in the order they acquired it.

    def dns_start(self) -> None:
        with self._lock.write():
            if self._marks[Mark.DNS_START] is None:
                self._marks[Mark.DNS_START] = self._clock()

    def dns_done(self, error: BaseException | None = None) -> None:
        with self._lock.write():
            now = self._clock()
            self._marks[Mark.DNS_DONE] = now
            lookup = _span(self._marks[Mark.DNS_START], now)
            self._durations["dns_lookup"] = lookup
            self._durations["name_lookup"] = lookup
        self._log_error("DNS", error)

    def connect_start(self, now: int | None = None) -> None:
        """Record the start of connection setup.

        Args:
            now: Clock reading when connecting began, for transports that
                only learn afterwards that a connect (not DNS) was under way
        """
        with self._lock.write():
            if now is None:
                now = self._clock()
            self._marks[Mark.TCP_START] = now
            if self._marks[Mark.DNS_START] is None:
                self._backfill(NO_DNS, now)

    def connect_done(self, error: BaseException | None = None) -> None:
        with self._lock.write():
            now = self._clock()
            self._marks[Mark.TCP_DONE] = now
            self._durations["tcp_connection"] = _span(self._marks[Mark.TCP_START], now)
            self._durations["connect"] = _span(self._marks[Mark.DNS_START], now)
        self._log_error("Connect", error)

    def tls_handshake_start(self) -> None:
        with self._lock.write():
            self._is_tls = True
            self._marks[Mark.TLS_START] = self._clock()

    def tls_handshake_done(self, error: BaseException | None = None) -> None:
        with self._lock.write():
            now = self._clock()
            self._marks[Mark.TLS_DONE] = now
            self._durations["tls_handshake"] = _span(self._marks[Mark.TLS_START], now)
            self._durations["pretransfer"] = _span(self._marks[Mark.DNS_START], now)
        self._log_error("TLS handshake", error)

    def got_conn(self, reused: bool) -> None:
        """Record that the transport obtained a connection.

        Pooled connections skip the DNS, connect and TLS hooks, so a reused
        connection is backfilled when the request is written.
        """
        if not reused:
            return
        with self._lock.write():
            self._is_reused = True

    def wrote_request(self, error: BaseException | None = None) -> None:
        with self._lock.write():
            now = self._clock()
            self._marks[Mark.SERVER_START] = now
            if self._marks[Mark.DNS_START] is None and self._marks[Mark.TCP_START] is None:
                self._backfill(UNINSTRUMENTED, now)
            if self._is_reused:
                self._backfill(REUSED, now)
            if not self._is_tls:
                self._durations["tls_handshake"] = 0
                self._durations["pretransfer"] = self._durations["connect"]
        self._log_error("Request write", error)

    def got_first_response_byte(self) -> None:
        with self._lock.write():
            now = self._clock()
            self._marks[Mark.SERVER_DONE] = now
            self._durations["server_processing"] = _span(self._marks[Mark.SERVER_START], now)
            self._durations["start_transfer"] = _span(self._marks[Mark.DNS_START], now)
            self._marks[Mark.TRANSFER_START] = now

    # Finalizer and accessors.

    def mark_done(self, now: int | None = None) -> None:
        """Close out the content transfer phase.

        Must be called once, after the response body has been fully read.
        If no lifecycle event was ever observed, only the end timestamp is
        recorded and ``content_transfer``/``total`` stay zero.

        Args:
            now: Clock reading when the body was consumed (defaults to now)
        """
        with self._lock.write():
            if now is None:
                now = self._clock()
            self._marks[Mark.TRANSFER_DONE] = now
            if self._marks[Mark.DNS_START] is None:
                logger.debug("Finished with no lifecycle events observed")
                return
            self._durations["content_transfer"] = _span(self._marks[Mark.TRANSFER_START], now)
            self._durations["total"] = _span(self._marks[Mark.DNS_START], now)

    def content_transfer_at(self, t: int) -> timedelta:
        """Time from the first response byte to ``t``, without storing it."""
        with self._lock.read():
            return _to_timedelta(_span(self._marks[Mark.SERVER_DONE], t))

    def total_at(self, t: int) -> timedelta:
        """Time from the start of the request to ``t``, without storing it."""
        with self._lock.read():
            return _to_timedelta(_span(self._marks[Mark.DNS_START], t))

    def durations(self) -> dict[str, timedelta]:
        """All derived durations, interval phases first then cumulative ones."""
        with self._lock.read():
            return {name: _to_timedelta(ns) for name, ns in self._durations.items()}

    def snapshot(self) -> Durations:
        """Copy every derived duration into a serializable ``Durations`` model."""
        with self._lock.read():
            values = {f"{name}_ms": ns / 1_000_000 for name, ns in self._durations.items()}
            return Durations(**values, is_tls=self._is_tls, is_reused=self._is_reused)

    def _backfill(self, rule: Backfill, now: int) -> None:
        # Caller holds the write lock.
        for mark in rule.fills:
            self._marks[mark] = now
        logger.debug(f"Backfilled skipped phases ({rule.name})")

    @staticmethod
    def _log_error(boundary: str, error: BaseException | None) -> None:
        if error is not None:
            logger.debug(f"{boundary} finished with error: {error!r}")
