"""Query name construction."""

import ipaddress
from typing import Optional

import dns.e164
import dns.exception
import dns.rdatatype
import dns.reversename

from dns_lookup.servers import ResolverConfig
from dns_lookup.types import LookupOptions


def is_ip_address(text: str) -> bool:
    try:
        ipaddress.ip_address(text)
    except ValueError:
        return False
    return True


def reverse_name(address: str) -> Optional[str]:
    """Return the in-addr.arpa / ip6.arpa name for an address.

    Returns None if ``address`` is not a literal IP address.
    """
    if not is_ip_address(address):
        return None
    try:
        rev = dns.reversename.from_address(address)
    except (dns.exception.SyntaxError, ValueError):
        return None
    return rev.to_text(omit_final_dot=True)


def enum_name(number: str) -> str:
    """Return the ENUM domain for a phone number.

    Non-digit characters are dropped, e.g. "+1-555-0100" becomes
    "0.0.1.0.5.5.5.1.e164.arpa".
    """
    return dns.e164.from_e164(number).to_text(omit_final_dot=True)


def apply_suffix(host: str, options: LookupOptions, system: ResolverConfig) -> str:
    """Append the DNS suffix to a single-label host name."""
    if "." in host or not options.add_dns_suffix or is_ip_address(host):
        return host

    if options.use_custom_dns_suffix:
        suffix = options.custom_dns_suffix
    else:
        suffix = system.domain_suffix()

    suffix = suffix.strip(".")
    if not suffix:
        return host
    return f"{host}.{suffix}"


def build_query_name(
    host: str,
    options: LookupOptions,
    system: ResolverConfig,
) -> tuple[str, dns.rdatatype.RdataType]:
    """Build the query name and record type for a host.

    Returns:
        Tuple of (query_name, record_type)
    """
    rdtype = dns.rdatatype.from_text(options.record_type)
    name = apply_suffix(host, options, system)

    if rdtype == dns.rdatatype.PTR:
        name = reverse_name(name) or name
    elif rdtype == dns.rdatatype.NAPTR:
        name = enum_name(name)

    return name, rdtype
