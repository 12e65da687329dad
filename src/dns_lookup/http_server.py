"""HTTP server for MCP with Streamable HTTP transport."""

import json
import logging
import os
from dataclasses import asdict
from typing import Callable, Optional

from mcp.server.streamable_http_manager import StreamableHTTPSessionManager

from dns_lookup.resolver import DNSLookup
from dns_lookup.server import build_options, configure_logging, create_server
from dns_lookup.types import ErrorResponse

logger = logging.getLogger(__name__)


def create_http_server(engine: Optional[DNSLookup] = None) -> Callable:
    """Create HTTP server wrapping the MCP server.

    Returns an ASGI application that serves the MCP protocol over
    Streamable HTTP transport at /mcp, and the DNS servers lookups would
    use at /health.
    """
    engine = engine or DNSLookup()
    mcp_server = create_server(engine)

    session_manager = StreamableHTTPSessionManager(
        app=mcp_server,
        json_response=False,  # Use SSE streaming
        stateless=False,
    )

    session_manager_context = None

    async def send_json(send, status: int, payload: dict):
        await send({
            "type": "http.response.start",
            "status": status,
            "headers": [[b"content-type", b"application/json"]],
        })
        await send({
            "type": "http.response.body",
            "body": json.dumps(payload).encode(),
        })

    async def health_response(send):
        """Report health and the default server list."""
        options = build_options({})
        if isinstance(options, ErrorResponse):
            await send_json(send, 500, {"status": "misconfigured", "error": options.error})
            return

        servers = [asdict(s) for s in engine.servers(options)]
        status = "healthy" if servers else "degraded"
        await send_json(send, 200, {"status": status, "dns_servers": servers})

    async def app(scope, receive, send):
        """ASGI application entry point."""
        nonlocal session_manager_context

        if scope["type"] == "lifespan":
            while True:
                message = await receive()
                if message["type"] == "lifespan.startup":
                    try:
                        session_manager_context = session_manager.run()
                        await session_manager_context.__aenter__()
                        logger.info("MCP session manager started")
                        await send({"type": "lifespan.startup.complete"})
                    except Exception as e:
                        logger.error(f"Startup failed: {e}")
                        await send({"type": "lifespan.startup.failed", "message": str(e)})
                elif message["type"] == "lifespan.shutdown":
                    if session_manager_context:
                        await session_manager_context.__aexit__(None, None, None)
                        logger.info("MCP session manager stopped")
                    await send({"type": "lifespan.shutdown.complete"})
                    return

        elif scope["type"] == "http":
            path = scope["path"]

            if path == "/health":
                await health_response(send)
            elif path == "/mcp":
                await session_manager.handle_request(scope, receive, send)
            else:
                await send_json(send, 404, {"error": "Not found"})

    return app


def main():
    """Run the HTTP server."""
    import uvicorn

    configure_logging()

    host = os.getenv("MCP_HOST", "0.0.0.0")
    port = int(os.getenv("MCP_PORT", "8000"))

    logger.info(f"Starting DNS lookup server on http://{host}:{port}/mcp")

    app = create_http_server()

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
