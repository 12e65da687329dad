"""DNS lookup engine with server fallback and fan-out."""

import asyncio
import ipaddress
import logging
import time
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass, replace
from typing import Callable, Optional, Union

import dns.asyncquery
import dns.exception
import dns.flags
import dns.message
import dns.rcode
import dns.rdataclass
import dns.rdatatype
import dns.resolver

from dns_lookup.names import build_query_name, reverse_name
from dns_lookup.records import cname_targets, demux, ptr_names
from dns_lookup.servers import ResolverConfig, SystemResolverConfig, resolve_servers
from dns_lookup.types import (
    LookupComplete,
    LookupEvent,
    LookupFailed,
    LookupOptions,
    PTRResult,
    RecordReceived,
    ServerEndpoint,
    TransportType,
)

logger = logging.getLogger(__name__)

# Record types a lookup may ask for
ALLOWED_RECORD_TYPES = frozenset({
    "A", "AAAA", "CNAME", "MX", "NS", "PTR", "SOA", "TXT", "NAPTR", "ANY",
})

# Maximum hosts per bulk request
MAX_BULK_HOSTS = 100

# Maximum concurrent DNS queries per engine
MAX_CONCURRENT_QUERIES = 20

NO_SERVERS_MESSAGE = "No DNS servers available"

QueryResult = Union[dns.message.Message, LookupFailed]
EventSink = Callable[[LookupEvent], None]


def validate_record_type(record_type: str) -> tuple[bool, str]:
    """Validate a record type against the allowlist.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if record_type.upper() not in ALLOWED_RECORD_TYPES:
        return False, f"Invalid record type: {record_type}. Allowed: {', '.join(sorted(ALLOWED_RECORD_TYPES))}"
    return True, ""


def validate_server_ips(servers: list[str]) -> tuple[bool, str]:
    """Validate custom DNS server addresses.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not servers:
        return False, "At least one DNS server is required"

    for server in servers:
        try:
            ipaddress.ip_address(server)
        except ValueError:
            return False, f"Invalid IP address format: {server}"

    return True, ""


@dataclass
class _CachedResponse:
    response: dns.message.Message
    expiration: float


def _min_ttl(response: dns.message.Message) -> int:
    ttls = [rrset.ttl for rrset in response.answer]
    return min(ttls) if ttls else 0


class QueryExecutor:
    """Sends single queries to single servers.

    Every call builds its own query message and socket, so concurrent calls
    share nothing except the optional response cache.
    """

    def __init__(self, cache: Optional[dns.resolver.Cache] = None):
        self.cache = cache if cache is not None else dns.resolver.Cache()

    def _should_retry(self, exception: Exception) -> bool:
        """Only timeouts and socket errors are worth another attempt."""
        return isinstance(exception, (dns.exception.Timeout, OSError))

    async def _send(
        self,
        query: dns.message.Message,
        server: ServerEndpoint,
        options: LookupOptions,
    ) -> dns.message.Message:
        if options.transport == TransportType.TCP:
            return await dns.asyncquery.tcp(
                query, server.address, timeout=options.timeout, port=server.port
            )
        return await dns.asyncquery.udp(
            query, server.address, timeout=options.timeout, port=server.port
        )

    async def query(
        self,
        server: ServerEndpoint,
        name: str,
        rdtype: dns.rdatatype.RdataType,
        rdclass: dns.rdataclass.RdataClass,
        options: LookupOptions,
    ) -> QueryResult:
        """
        Query one server.

        Args:
            server: Server to ask
            name: Query name
            rdtype: Record type
            rdclass: Record class
            options: Transport, timeout, attempts, recursion and cache settings

        Returns:
            The response message on success, LookupFailed otherwise
        """
        cache_key = (server, name.lower(), rdtype, rdclass, options.recursion, options.transport)
        if options.use_resolver_cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit for {name} {dns.rdatatype.to_text(rdtype)} on {server}")
                return cached.response

        try:
            query = dns.message.make_query(name, rdtype, rdclass)
        except dns.exception.DNSException as e:
            return LookupFailed(message=f"Invalid query name {name!r}: {e}", server=server)

        if not options.recursion:
            query.flags &= ~dns.flags.RD

        attempts = max(1, options.attempts)
        last_error: Optional[Exception] = None
        response = None

        for attempt in range(attempts):
            try:
                response = await self._send(query, server, options)
                break
            except (dns.exception.DNSException, OSError, ValueError) as e:
                last_error = e
                logger.debug(f"Query {name} to {server} failed (attempt {attempt + 1}/{attempts}): {e!r}")
                if not self._should_retry(e):
                    break
            except Exception as e:
                last_error = e
                logger.error(f"Query {name} to {server} raised: {e!r}")
                break

        if response is None:
            if isinstance(last_error, dns.exception.Timeout):
                message = f"Timeout after {attempts} attempt(s)"
            else:
                message = str(last_error) or type(last_error).__name__
            return LookupFailed(message=message, server=server)

        rcode = response.rcode()
        if rcode != dns.rcode.NOERROR:
            return LookupFailed(message=dns.rcode.to_text(rcode), server=server)

        if options.use_resolver_cache:
            self.cache.put(cache_key, _CachedResponse(response, time.time() + _min_ttl(response)))

        return response


class DNSLookup:
    """DNS lookup engine.

    Reverse lookups walk the server list in order and stop at the first
    server with PTR names. Bulk lookups ask every server for each host
    concurrently and report records, failures and completion as events.
    """

    def __init__(
        self,
        system_config: Optional[ResolverConfig] = None,
        executor: Optional[QueryExecutor] = None,
        max_concurrent_queries: int = MAX_CONCURRENT_QUERIES,
    ):
        self.system_config = system_config or SystemResolverConfig()
        self.executor = executor or QueryExecutor()
        self._semaphore = asyncio.Semaphore(max_concurrent_queries)

    def servers(self, options: LookupOptions) -> list[ServerEndpoint]:
        return resolve_servers(options, self.system_config)

    async def resolve_ptr(self, address: str, options: LookupOptions) -> PTRResult:
        """
        Resolve an address to its PTR names.

        Args:
            address: IPv4 or IPv6 address
            options: Lookup options

        Returns:
            PTRResult with the first server that returned names, or the last
            server tried and no names
        """
        servers = self.servers(options)
        if not servers:
            logger.warning(f"{NO_SERVERS_MESSAGE} for reverse lookup of {address}")
            return PTRResult(server=None)

        name = reverse_name(address) or address
        rdclass = dns.rdataclass.from_text(options.record_class)
        last_server = None

        for server in servers:
            last_server = server
            result = await self.executor.query(server, name, dns.rdatatype.PTR, rdclass, options)

            if isinstance(result, LookupFailed):
                logger.debug(f"Reverse lookup of {address} on {server} failed: {result.message}")
                continue

            names = ptr_names(result)
            if names:
                return PTRResult(server=server, names=names)

        return PTRResult(server=last_server)

    def resolve_ptr_sync(self, address: str, options: LookupOptions) -> PTRResult:
        """Blocking form of resolve_ptr."""
        return asyncio.run(self.resolve_ptr(address, options))

    async def _query(
        self,
        server: ServerEndpoint,
        name: str,
        rdtype: dns.rdatatype.RdataType,
        rdclass: dns.rdataclass.RdataClass,
        options: LookupOptions,
        emit: EventSink,
        chase: bool = False,
    ) -> Optional[dns.message.Message]:
        async with self._semaphore:
            try:
                result = await self.executor.query(server, name, rdtype, rdclass, options)
            except Exception as e:
                logger.error(f"Query {name} to {server} raised: {e!r}")
                result = LookupFailed(message=str(e) or type(e).__name__, server=server)

        if isinstance(result, LookupFailed):
            if chase:
                result = replace(result, chase=True)
            emit(result)
            return None

        for record in demux(result, server):
            emit(RecordReceived(record))
        return result

    async def _lookup_server(
        self,
        server: ServerEndpoint,
        name: str,
        rdtype: dns.rdatatype.RdataType,
        rdclass: dns.rdataclass.RdataClass,
        options: LookupOptions,
        emit: EventSink,
    ) -> None:
        response = await self._query(server, name, rdtype, rdclass, options, emit)
        if response is None:
            return

        # An ANY answer may only hold a CNAME; ask the same server for its target
        if options.resolve_cname and rdtype == dns.rdatatype.ANY:
            for target in cname_targets(response):
                await self._query(server, target, rdtype, rdclass, options, emit, chase=True)

    async def _lookup_host(
        self,
        host: str,
        servers: list[ServerEndpoint],
        options: LookupOptions,
        emit: EventSink,
    ) -> None:
        try:
            name, rdtype = build_query_name(host, options, self.system_config)
        except dns.exception.DNSException as e:
            logger.warning(f"Cannot build query name for {host!r}: {e}")
            for server in servers:
                emit(LookupFailed(message=f"Invalid query name for {host!r}: {e}", server=server))
            return

        rdclass = dns.rdataclass.from_text(options.record_class)
        logger.debug(f"Looking up {name} {dns.rdatatype.to_text(rdtype)} on {len(servers)} server(s)")

        await asyncio.gather(*(
            self._lookup_server(server, name, rdtype, rdclass, options, emit)
            for server in servers
        ))

    async def _run(self, hosts: Iterable[str], options: LookupOptions, emit: EventSink) -> None:
        try:
            servers = self.servers(options)
            if not servers:
                logger.warning(NO_SERVERS_MESSAGE)
                emit(LookupFailed(message=NO_SERVERS_MESSAGE, server=None))
                return

            for host in hosts:
                await self._lookup_host(host, servers, options, emit)
        finally:
            emit(LookupComplete())

    def resolve_async(
        self,
        hosts: Iterable[str],
        options: LookupOptions,
        sink: EventSink,
    ) -> asyncio.Task:
        """
        Start a bulk lookup in the background.

        Must be called with a running event loop. Events are passed to
        ``sink`` from the background task; LookupComplete is always last,
        including when the task is cancelled.

        Args:
            hosts: Host names or addresses
            options: Lookup options
            sink: Callable receiving each event

        Returns:
            The background task
        """
        return asyncio.create_task(self._run(list(hosts), options, sink))

    async def stream(self, hosts: Iterable[str], options: LookupOptions) -> AsyncIterator[LookupEvent]:
        """
        Run a bulk lookup and yield its events as they arrive.

        The final event is always LookupComplete. Closing the iterator early
        cancels the remaining queries.
        """
        queue: asyncio.Queue = asyncio.Queue()
        task = self.resolve_async(hosts, options, queue.put_nowait)

        try:
            while True:
                event = await queue.get()
                yield event
                if isinstance(event, LookupComplete):
                    break
        finally:
            if not task.done():
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def lookup(self, hosts: Iterable[str], options: LookupOptions) -> list[LookupEvent]:
        """Run a bulk lookup and collect all of its events."""
        return [event async for event in self.stream(hosts, options)]
