"""DNS server list resolution."""

import logging
from typing import Optional, Protocol

import dns.name
import dns.resolver

from dns_lookup.types import LookupOptions, ServerEndpoint

logger = logging.getLogger(__name__)

DEFAULT_PORT = 53

# IPv6 site-local DNS servers (fec0:0:0:ffff::1-3) are never queried
SITE_LOCAL_PREFIX = "fec0"


class ResolverConfig(Protocol):
    """Read-only view of the host's resolver configuration."""

    def nameservers(self) -> list[str]:
        ...

    def domain_suffix(self) -> str:
        ...


class StaticResolverConfig:
    """Resolver configuration with fixed values."""

    def __init__(self, nameservers: Optional[list[str]] = None, domain_suffix: str = ""):
        self._nameservers = list(nameservers or [])
        self._domain_suffix = domain_suffix

    def nameservers(self) -> list[str]:
        return list(self._nameservers)

    def domain_suffix(self) -> str:
        return self._domain_suffix


class SystemResolverConfig:
    """Resolver configuration read from the operating system.

    Uses dnspython's stub resolver to read /etc/resolv.conf (or the Windows
    registry). The configuration is loaded once, on first use.
    """

    def __init__(self, filename: str = "/etc/resolv.conf"):
        self.filename = filename
        self._resolver: Optional[dns.resolver.Resolver] = None
        self._loaded = False

    def _load(self) -> Optional[dns.resolver.Resolver]:
        if not self._loaded:
            self._loaded = True
            try:
                self._resolver = dns.resolver.Resolver(filename=self.filename)
            except (dns.resolver.NoResolverConfiguration, OSError) as e:
                logger.warning(f"Cannot read system resolver configuration: {e}")
                self._resolver = None
        return self._resolver

    def nameservers(self) -> list[str]:
        resolver = self._load()
        if resolver is None:
            return []
        # Entries are plain strings or dns.nameserver.Nameserver objects
        return [str(getattr(ns, "address", ns)) for ns in resolver.nameservers]

    def domain_suffix(self) -> str:
        resolver = self._load()
        if resolver is None or resolver.domain == dns.name.root:
            return ""
        return resolver.domain.to_text(omit_final_dot=True)


def is_site_local(address: str) -> bool:
    return address.lower().startswith(SITE_LOCAL_PREFIX)


def resolve_servers(options: LookupOptions, system: ResolverConfig) -> list[ServerEndpoint]:
    """Compute the ordered list of servers to query.

    Custom servers are used as given, with ``options.port``. Otherwise the
    system servers are used on the default port, minus site-local ones.
    """
    if options.use_custom_dns_server:
        return [ServerEndpoint(address, options.port) for address in options.custom_dns_servers]

    servers = []
    for address in system.nameservers():
        if is_site_local(address):
            logger.debug(f"Skipping site-local DNS server {address}")
            continue
        servers.append(ServerEndpoint(address, DEFAULT_PORT))
    return servers
