"""Split DNS responses into typed records."""

import functools
from collections.abc import Iterator
from typing import Any, Optional

import dns.message
import dns.rdata
import dns.rdataclass
import dns.rdatatype
import dns.rrset
from dns.rdtypes.ANY.CNAME import CNAME as R_CNAME
from dns.rdtypes.ANY.MX import MX as R_MX
from dns.rdtypes.ANY.NS import NS as R_NS
from dns.rdtypes.ANY.PTR import PTR as R_PTR
from dns.rdtypes.ANY.SOA import SOA as R_SOA
from dns.rdtypes.ANY.TXT import TXT as R_TXT
from dns.rdtypes.IN.A import A as R_A
from dns.rdtypes.IN.AAAA import AAAA as R_AAAA

from dns_lookup.types import (
    AAAARecord,
    ARecord,
    CNAMERecord,
    MXRecord,
    NSRecord,
    PTRRecord,
    RecordHeader,
    ResolvedRecord,
    ServerEndpoint,
    SOARecord,
    TXTRecord,
)

# Kinds emitted to callers, in emission order. NAPTR is deliberately absent.
DEMUX_ORDER = (
    dns.rdatatype.A,
    dns.rdatatype.AAAA,
    dns.rdatatype.CNAME,
    dns.rdatatype.MX,
    dns.rdatatype.NS,
    dns.rdatatype.PTR,
    dns.rdatatype.SOA,
    dns.rdatatype.TXT,
)


def _name(n: Any) -> str:
    return "" if n is None else n.to_text(omit_final_dot=True)


def _txt_join(r: R_TXT) -> str:
    return "".join(s.decode(errors="replace") for s in r.strings)


def _header(rrset: dns.rrset.RRset) -> RecordHeader:
    return RecordHeader(
        name=_name(rrset.name),
        type=dns.rdatatype.to_text(rrset.rdtype),
        rdclass=dns.rdataclass.to_text(rrset.rdclass),
        ttl=rrset.ttl,
    )


@functools.singledispatch
def parse_rdata(r: dns.rdata.Rdata, header: RecordHeader, server: ServerEndpoint) -> Optional[ResolvedRecord]:
    """Convert one rdata into a record. Unsupported kinds give None."""
    return None


@parse_rdata.register
def _(r: R_A, header: RecordHeader, server: ServerEndpoint) -> ARecord:
    return ARecord(header=header, server=server, address=r.address)


@parse_rdata.register
def _(r: R_AAAA, header: RecordHeader, server: ServerEndpoint) -> AAAARecord:
    return AAAARecord(header=header, server=server, address=r.address)


@parse_rdata.register
def _(r: R_CNAME, header: RecordHeader, server: ServerEndpoint) -> CNAMERecord:
    return CNAMERecord(header=header, server=server, target=_name(r.target))


@parse_rdata.register
def _(r: R_MX, header: RecordHeader, server: ServerEndpoint) -> MXRecord:
    return MXRecord(
        header=header,
        server=server,
        preference=int(r.preference),
        exchange=_name(r.exchange),
    )


@parse_rdata.register
def _(r: R_NS, header: RecordHeader, server: ServerEndpoint) -> NSRecord:
    return NSRecord(header=header, server=server, target=_name(r.target))


@parse_rdata.register
def _(r: R_PTR, header: RecordHeader, server: ServerEndpoint) -> PTRRecord:
    return PTRRecord(header=header, server=server, target=_name(r.target))


@parse_rdata.register
def _(r: R_SOA, header: RecordHeader, server: ServerEndpoint) -> SOARecord:
    return SOARecord(
        header=header,
        server=server,
        mname=_name(r.mname),
        rname=_name(r.rname),
        serial=int(r.serial),
        refresh=int(r.refresh),
        retry=int(r.retry),
        expire=int(r.expire),
        minimum=int(r.minimum),
    )


@parse_rdata.register
def _(r: R_TXT, header: RecordHeader, server: ServerEndpoint) -> TXTRecord:
    return TXTRecord(header=header, server=server, text=_txt_join(r))


def records_of(response: dns.message.Message, rdtype: dns.rdatatype.RdataType) -> Iterator[tuple[dns.rrset.RRset, dns.rdata.Rdata]]:
    """Yield (rrset, rdata) pairs of one type from the answer section."""
    for rrset in response.answer:
        if rrset.rdtype != rdtype:
            continue
        for rdata in rrset:
            yield rrset, rdata


def demux(response: dns.message.Message, server: ServerEndpoint) -> Iterator[ResolvedRecord]:
    """Yield one record per supported answer entry, grouped by kind.

    Within a kind the response order is kept.
    """
    for rdtype in DEMUX_ORDER:
        for rrset, rdata in records_of(response, rdtype):
            record = parse_rdata(rdata, _header(rrset), server)
            if record is not None:
                yield record


def ptr_names(response: dns.message.Message) -> list[str]:
    return [_name(rdata.target) for _, rdata in records_of(response, dns.rdatatype.PTR)]


def cname_targets(response: dns.message.Message) -> list[str]:
    return [_name(rdata.target) for _, rdata in records_of(response, dns.rdatatype.CNAME)]
