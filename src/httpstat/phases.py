"""Request phases, raw timestamp marks and the backfill table.

Transports skip lifecycle hooks in three situations: dialing an IP literal
(no DNS), reusing a pooled connection (no DNS/connect/TLS) and code paths
that are not instrumented at all. Each situation is a ``Backfill`` rule:
when it applies, every mark it names is set to the instant of the hook that
detected the skip, collapsing the skipped phases to zero duration.
"""

from dataclasses import dataclass
from enum import Enum


class Mark(str, Enum):
    """Raw timestamps recorded for one request attempt, in canonical order."""

    DNS_START = "dns_start"
    DNS_DONE = "dns_done"
    TCP_START = "tcp_start"
    TCP_DONE = "tcp_done"
    TLS_START = "tls_start"
    TLS_DONE = "tls_done"
    SERVER_START = "server_start"
    SERVER_DONE = "server_done"
    TRANSFER_START = "transfer_start"
    TRANSFER_DONE = "transfer_done"


class Phase(str, Enum):
    """Furthest phase a request attempt has reached.

    Writing the request and waiting for the first byte share one phase,
    ``WAITING_FIRST_BYTE``: both are marked by ``SERVER_START`` alone, and no
    hook fires between them.
    """

    IDLE = "idle"
    DNS = "dns"
    CONNECTING = "connecting"
    TLS_HANDSHAKE = "tls_handshake"
    WAITING_FIRST_BYTE = "waiting_first_byte"
    TRANSFERRING = "transferring"
    DONE = "done"


# Checked latest first: the first set mark decides the phase.
PHASE_BY_MARK: tuple[tuple[Mark, Phase], ...] = (
    (Mark.TRANSFER_DONE, Phase.DONE),
    (Mark.TRANSFER_START, Phase.TRANSFERRING),
    (Mark.SERVER_START, Phase.WAITING_FIRST_BYTE),
    (Mark.TLS_START, Phase.TLS_HANDSHAKE),
    (Mark.TCP_START, Phase.CONNECTING),
    (Mark.DNS_START, Phase.DNS),
)


@dataclass(frozen=True)
class Backfill:
    """Marks filled with the current instant when a phase was skipped.

    Attributes:
        name: Short label used in log records
        fills: Marks set to the triggering instant, in canonical order
    """

    name: str
    fills: tuple[Mark, ...]


# Connect started with no DNS phase (IP literal or resolver outside the hooks).
NO_DNS = Backfill("no_dns", (Mark.DNS_START, Mark.DNS_DONE))

# Request written with no earlier hook at all.
UNINSTRUMENTED = Backfill(
    "uninstrumented",
    (Mark.DNS_START, Mark.DNS_DONE, Mark.TCP_START, Mark.TCP_DONE),
)

# Request written on a pooled connection; setup happened before this attempt.
REUSED = Backfill(
    "reused",
    (
        Mark.DNS_START,
        Mark.DNS_DONE,
        Mark.TCP_START,
        Mark.TCP_DONE,
        Mark.TLS_START,
        Mark.TLS_DONE,
    ),
)
