"""MCP server for DNS lookups."""

import asyncio
import json
import logging
import os
from dataclasses import asdict
from typing import Any, Optional, Union

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from dns_lookup.resolver import (
    MAX_BULK_HOSTS,
    DNSLookup,
    validate_record_type,
    validate_server_ips,
)
from dns_lookup.types import (
    ErrorResponse,
    LookupComplete,
    LookupFailed,
    LookupOptions,
    RecordReceived,
    TransportType,
)

logger = logging.getLogger(__name__)

# Default configuration from environment
DEFAULT_TIMEOUT = float(os.getenv("DNS_TIMEOUT", "2"))
DEFAULT_ATTEMPTS = int(os.getenv("DNS_ATTEMPTS", "3"))
DEFAULT_SERVERS = [s.strip() for s in os.getenv("DNS_SERVERS", "").split(",") if s.strip()]
DEFAULT_PORT = int(os.getenv("DNS_PORT", "53"))
DEFAULT_TRANSPORT = os.getenv("DNS_TRANSPORT", "udp").lower()
DEFAULT_SUFFIX = os.getenv("DNS_SUFFIX", "")


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_options(arguments: dict[str, Any]) -> Union[LookupOptions, ErrorResponse]:
    """Build lookup options from tool arguments and the env defaults.

    Returns:
        LookupOptions on success, ErrorResponse if an argument is invalid
    """
    record_type = arguments.get("record_type", "ANY").upper()
    is_valid, error = validate_record_type(record_type)
    if not is_valid:
        return ErrorResponse(error=error)

    servers = arguments.get("servers") or DEFAULT_SERVERS
    if servers:
        is_valid, error = validate_server_ips(servers)
        if not is_valid:
            return ErrorResponse(error=error)

    transport = arguments.get("transport", DEFAULT_TRANSPORT).lower()
    if transport not in (TransportType.UDP.value, TransportType.TCP.value):
        return ErrorResponse(error=f"Invalid transport: {transport}. Allowed: tcp, udp")

    port = int(arguments.get("port", DEFAULT_PORT))
    if not 0 < port <= 65535:
        return ErrorResponse(error=f"Invalid port: {port}. Must be between 1 and 65535")

    suffix = arguments.get("dns_suffix", DEFAULT_SUFFIX)

    return LookupOptions(
        record_type=record_type,
        use_custom_dns_server=bool(servers),
        custom_dns_servers=tuple(servers),
        port=port,
        recursion=bool(arguments.get("recursion", True)),
        transport=TransportType(transport),
        use_resolver_cache=bool(arguments.get("use_cache", False)),
        attempts=DEFAULT_ATTEMPTS,
        timeout=DEFAULT_TIMEOUT,
        add_dns_suffix=bool(arguments.get("add_dns_suffix", True)),
        use_custom_dns_suffix=bool(suffix),
        custom_dns_suffix=suffix,
        resolve_cname=bool(arguments.get("resolve_cname", True)),
    )


async def run_lookup(engine: DNSLookup, hosts: list[str], options: LookupOptions) -> dict[str, Any]:
    """Run a bulk lookup and fold its events into one JSON-ready result."""
    records = []
    errors = []
    complete = False

    async for event in engine.stream(hosts, options):
        if isinstance(event, RecordReceived):
            records.append(asdict(event.record))
        elif isinstance(event, LookupFailed):
            errors.append(asdict(event))
        elif isinstance(event, LookupComplete):
            complete = True

    return {
        "hosts": hosts,
        "record_type": options.record_type,
        "records": records,
        "errors": errors,
        "complete": complete,
        "success": bool(records) or not errors,
    }


def create_server(engine: Optional[DNSLookup] = None) -> Server:
    """Create and configure the MCP server."""
    server = Server("dns-lookup-server")
    engine = engine or DNSLookup()

    server_properties = {
        "servers": {
            "type": "array",
            "items": {"type": "string"},
            "description": "DNS server IPs to query (optional, defaults to the system resolvers)",
        },
        "port": {
            "type": "integer",
            "description": "Port of the given DNS servers (default: 53)",
        },
        "transport": {
            "type": "string",
            "enum": ["udp", "tcp"],
            "description": "Transport to use (default: udp)",
        },
        "recursion": {
            "type": "boolean",
            "description": "Ask servers to recurse (default: true)",
        },
    }

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List available DNS tools."""
        return [
            Tool(
                name="dns_lookup",
                description="Query every DNS server for each host and return all records and per-server errors.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "hosts": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": "Host names, addresses or ENUM numbers to query",
                        },
                        "record_type": {
                            "type": "string",
                            "description": "Record type (default: ANY). One of A, AAAA, CNAME, MX, NS, PTR, SOA, TXT, NAPTR, ANY",
                            "default": "ANY",
                        },
                        "resolve_cname": {
                            "type": "boolean",
                            "description": "Follow CNAME records of ANY answers (default: true)",
                        },
                        "add_dns_suffix": {
                            "type": "boolean",
                            "description": "Append the DNS suffix to single-label names (default: true)",
                        },
                        "dns_suffix": {
                            "type": "string",
                            "description": "Suffix to append instead of the system one (optional)",
                        },
                        "use_cache": {
                            "type": "boolean",
                            "description": "Reuse cached responses (default: false)",
                        },
                        **server_properties,
                    },
                    "required": ["hosts"],
                },
            ),
            Tool(
                name="dns_reverse",
                description="Reverse DNS lookup (PTR) for an IP address, trying servers in order.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "ip": {
                            "type": "string",
                            "description": "IPv4 or IPv6 address",
                        },
                        **server_properties,
                    },
                    "required": ["ip"],
                },
            ),
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        """Handle tool calls."""
        logger.info(f"Tool call: {name} with arguments: {arguments}")

        try:
            if name == "dns_lookup":
                hosts = arguments["hosts"]
                if len(hosts) > MAX_BULK_HOSTS:
                    result = asdict(ErrorResponse(
                        error=f"Bulk host limit exceeded: {len(hosts)} hosts requested, maximum is {MAX_BULK_HOSTS}",
                    ))
                else:
                    options = build_options(arguments)
                    if isinstance(options, ErrorResponse):
                        result = asdict(options)
                    else:
                        result = await run_lookup(engine, hosts, options)

            elif name == "dns_reverse":
                options = build_options({**arguments, "record_type": "PTR"})
                if isinstance(options, ErrorResponse):
                    result = asdict(options)
                else:
                    ptr = await engine.resolve_ptr(arguments["ip"], options)
                    result = {
                        "ip": arguments["ip"],
                        "server": asdict(ptr.server) if ptr.server else None,
                        "names": ptr.names,
                        "success": bool(ptr.names),
                    }

            else:
                result = {"error": f"Unknown tool: {name}", "success": False}

            return [TextContent(type="text", text=json.dumps(result, indent=2))]

        except Exception as e:
            logger.error(f"Tool {name} failed: {e}")
            error_response = {"error": str(e), "success": False}
            return [TextContent(type="text", text=json.dumps(error_response, indent=2))]

    return server


def main():
    """Run the MCP server."""
    configure_logging()
    server = create_server()

    async def run():
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())

    asyncio.run(run())


if __name__ == "__main__":
    main()
