"""Type definitions for DNS lookups."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class TransportType(str, Enum):
    """Transport used to reach a DNS server."""

    UDP = "udp"
    TCP = "tcp"


@dataclass(frozen=True)
class LookupOptions:
    """Options for one lookup call.

    Custom server fields are only read when ``use_custom_dns_server`` is set,
    suffix fields only when ``add_dns_suffix`` is set.
    """

    record_type: str = "ANY"
    record_class: str = "IN"
    use_custom_dns_server: bool = False
    custom_dns_servers: tuple[str, ...] = ()
    port: int = 53
    recursion: bool = True
    transport: TransportType = TransportType.UDP
    use_resolver_cache: bool = False
    attempts: int = 3
    timeout: float = 2.0
    add_dns_suffix: bool = True
    use_custom_dns_suffix: bool = False
    custom_dns_suffix: str = ""
    resolve_cname: bool = True


@dataclass(frozen=True)
class ServerEndpoint:
    """A DNS server address and port."""

    address: str
    port: int = 53

    def __str__(self) -> str:
        if ":" in self.address:
            return f"[{self.address}]:{self.port}"
        return f"{self.address}:{self.port}"


@dataclass(frozen=True)
class RecordHeader:
    """Owner name, type, class and TTL of a resource record."""

    name: str
    type: str
    rdclass: str
    ttl: int


@dataclass(frozen=True)
class ARecord:
    """An IPv4 address record."""

    header: RecordHeader
    server: ServerEndpoint
    address: str


@dataclass(frozen=True)
class AAAARecord:
    """An IPv6 address record."""

    header: RecordHeader
    server: ServerEndpoint
    address: str


@dataclass(frozen=True)
class CNAMERecord:
    """A canonical name alias."""

    header: RecordHeader
    server: ServerEndpoint
    target: str


@dataclass(frozen=True)
class MXRecord:
    """A mail exchanger with its preference."""

    header: RecordHeader
    server: ServerEndpoint
    preference: int
    exchange: str


@dataclass(frozen=True)
class NSRecord:
    """An authoritative name server."""

    header: RecordHeader
    server: ServerEndpoint
    target: str


@dataclass(frozen=True)
class PTRRecord:
    """A pointer to a host name."""

    header: RecordHeader
    server: ServerEndpoint
    target: str


@dataclass(frozen=True)
class SOARecord:
    """A zone's start of authority."""

    header: RecordHeader
    server: ServerEndpoint
    mname: str
    rname: str
    serial: int
    refresh: int
    retry: int
    expire: int
    minimum: int


@dataclass(frozen=True)
class TXTRecord:
    """A text record, with its strings joined."""

    header: RecordHeader
    server: ServerEndpoint
    text: str


ResolvedRecord = Union[
    ARecord,
    AAAARecord,
    CNAMERecord,
    MXRecord,
    NSRecord,
    PTRRecord,
    SOARecord,
    TXTRecord,
]


@dataclass(frozen=True)
class RecordReceived:
    """A record arrived from one server."""

    record: ResolvedRecord


@dataclass(frozen=True)
class LookupFailed:
    """A query against one server failed.

    ``chase`` is set when the failing query followed a CNAME target.
    ``server`` is None only when there was no server to ask at all.
    """

    message: str
    server: Optional[ServerEndpoint]
    chase: bool = False


@dataclass(frozen=True)
class LookupComplete:
    """No further events follow for this call."""


LookupEvent = Union[RecordReceived, LookupFailed, LookupComplete]


@dataclass
class PTRResult:
    """Result of a reverse lookup: the answering server and its PTR names."""

    server: Optional[ServerEndpoint]
    names: list[str] = field(default_factory=list)


@dataclass
class ErrorResponse:
    """Response for a rejected tool call."""

    error: str
    success: bool = False
