"""Durations model for a finished (or in-flight) request timing."""

from pydantic import BaseModel, Field


class Durations(BaseModel):
    """Point-in-time copy of every derived duration, in milliseconds.

    Interval fields cover one phase; cumulative fields run from the start of
    the request (DNS start, or the backfilled instant standing in for it).

    Attributes:
        dns_lookup_ms: Name resolution
        tcp_connection_ms: Transport connection establishment
        tls_handshake_ms: Secure session negotiation
        server_processing_ms: Request written to first response byte
        content_transfer_ms: First response byte to body consumed
        name_lookup_ms: Cumulative through DNS
        connect_ms: Cumulative through connect
        pretransfer_ms: Cumulative through TLS (or connect when plaintext)
        start_transfer_ms: Cumulative through first response byte
        total_ms: Cumulative through body consumed
        is_tls: Whether a TLS handshake was observed
        is_reused: Whether the connection came from a pool
    """

    dns_lookup_ms: float = Field(default=0.0, description="DNS lookup time in ms")
    tcp_connection_ms: float = Field(default=0.0, description="TCP connect time in ms")
    tls_handshake_ms: float = Field(default=0.0, description="TLS handshake time in ms")
    server_processing_ms: float = Field(default=0.0, description="Server processing time in ms")
    content_transfer_ms: float = Field(default=0.0, description="Content transfer time in ms")
    name_lookup_ms: float = Field(default=0.0, description="Cumulative name lookup time in ms")
    connect_ms: float = Field(default=0.0, description="Cumulative connect time in ms")
    pretransfer_ms: float = Field(default=0.0, description="Cumulative pretransfer time in ms")
    start_transfer_ms: float = Field(default=0.0, description="Cumulative start transfer in ms")
    total_ms: float = Field(default=0.0, description="Total request time in ms")
    is_tls: bool = False
    is_reused: bool = False
