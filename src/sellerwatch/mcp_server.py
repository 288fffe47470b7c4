"""MCP server exposing the snapshot history tools.

Usage:
    sellerwatch-mcp                              # stdio transport (default)
    sellerwatch-mcp --transport streamable-http   # HTTP transport on port 8080
    sellerwatch-mcp --transport streamable-http --port 9000
"""

import argparse
import asyncio
import contextlib
import json
import logging

from mcp import types
from mcp.server.lowlevel import Server

from sellerwatch.config import get_settings
from sellerwatch.db import init_db
from sellerwatch.logging_config import configure_logging
from sellerwatch.tools.definitions import TOOLS
from sellerwatch.tools.dispatch import create_services, execute_tool

logger = logging.getLogger(__name__)


def _build_tools() -> list[types.Tool]:
    """Convert definitions.py TOOLS to MCP Tool objects."""
    return [
        types.Tool(
            name=tool_def["name"],
            description=tool_def["description"],
            inputSchema=dict(tool_def["input_schema"]),
        )
        for tool_def in TOOLS
    ]


def _create_server(services: dict[str, object]) -> Server:
    """Create and configure the MCP server with tool handlers."""
    server = Server("sellerwatch")
    tools = _build_tools()

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        return tools

    @server.call_tool()
    async def handle_call_tool(name: str, arguments: dict | None) -> types.CallToolResult:
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, execute_tool, services, name, arguments or {})
        text = json.dumps(result, default=str)
        is_error = "error" in result
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=text)],
            isError=is_error,
        )

    return server


def _http_app(session_manager):
    """ASGI app serving the MCP endpoint at /mcp; the session manager runs for the app lifespan."""
    from starlette.applications import Starlette
    from starlette.routing import Mount

    @contextlib.asynccontextmanager
    async def lifespan(app):
        async with session_manager.run():
            yield

    return Starlette(
        routes=[Mount("/mcp", app=session_manager.handle_request)],
        lifespan=lifespan,
    )


def main():
    """Entry point for sellerwatch-mcp CLI."""
    parser = argparse.ArgumentParser(description="Sellerwatch MCP server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "streamable-http"],
        default="stdio",
        help="Transport type (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host for HTTP transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8080,
        help="Port for HTTP transport (default: 8080)",
    )
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json, settings.log_file)
    engine = init_db(settings.database_path)
    services = create_services(settings, engine)

    server = _create_server(services)

    if args.transport == "stdio":
        from mcp.server.stdio import stdio_server

        async def _run_stdio():
            async with stdio_server() as (read_stream, write_stream):
                await server.run(
                    read_stream,
                    write_stream,
                    server.create_initialization_options(),
                )

        asyncio.run(_run_stdio())
    else:
        import uvicorn
        from mcp.server.streamable_http_manager import StreamableHTTPSessionManager

        if args.host != "127.0.0.1":
            logger.warning(
                "MCP HTTP server bound to %s with no authentication. "
                "Any client that can reach this port can trigger captures.",
                args.host,
            )

        session_manager = StreamableHTTPSessionManager(app=server, stateless=True)
        uvicorn.run(_http_app(session_manager), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
