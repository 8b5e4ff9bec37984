"""
pgadvisor-mcp: PostgreSQL schema optimization advisor over MCP

Exposes the table analyzer as MCP tools. Supports stdio and
streamable-http MCP server modes.
"""

from __future__ import annotations

import argparse
import contextlib
import logging
import os
import sys
import traceback
from collections.abc import AsyncIterator, Sequence
from typing import Any

from mcp.server import Server
from mcp.types import (
    EmbeddedResource,
    ImageContent,
    TextContent,
    Tool,
)

# HTTP-related imports (imported conditionally)
try:
    import uvicorn
    from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
    from starlette.applications import Starlette
    from starlette.middleware.cors import CORSMiddleware
    from starlette.routing import Route
    HTTP_AVAILABLE = True
except ImportError:
    HTTP_AVAILABLE = False

from .config import DatabaseSettings
from .services import DbConnection, SqlDriver
from .tools import (
    AnalyzeTableToolHandler,
    ListTablesToolHandler,
    OptimizationSuggestionsToolHandler,
    ToolHandler,
)

logger = logging.getLogger("pgadvisor_mcp")

app = Server("pgadvisor_mcp")

tool_handlers: dict[str, ToolHandler] = {}

sql_driver: SqlDriver | None = None


def add_tool_handler(tool_handler: ToolHandler) -> None:
    tool_handlers[tool_handler.name] = tool_handler
    logger.info(f"Registered tool handler: {tool_handler.name}")


def get_tool_handler(name: str) -> ToolHandler | None:
    return tool_handlers.get(name)


def get_sql_driver() -> SqlDriver:
    """
    Get the shared SQL driver.

    Raises:
        RuntimeError: If the driver is not initialized
    """
    if sql_driver is None:
        raise RuntimeError("SQL driver not initialized")
    return sql_driver


def register_all_tools() -> None:
    """Register all available tool handlers against the shared driver."""
    driver = get_sql_driver()

    add_tool_handler(ListTablesToolHandler(driver))
    add_tool_handler(AnalyzeTableToolHandler(driver))
    add_tool_handler(OptimizationSuggestionsToolHandler(
        lambda: SqlDriver(DbConnection(driver.connection.connection_url))
    ))

    logger.info(f"Registered {len(tool_handlers)} tool handlers")


def create_streamable_http_app(mcp_server: Server, *, debug: bool = False, stateless: bool = False) -> Starlette:
    """
    Create a Starlette application serving the MCP Streamable HTTP protocol
    on a single /mcp endpoint.

    Args:
        mcp_server: The MCP server instance
        debug: Whether to enable debug mode
        stateless: If True, creates a fresh transport for each request with no session tracking
    """
    if not HTTP_AVAILABLE:
        raise RuntimeError("HTTP dependencies not available. Install with: pip install pgadvisor-mcp[http]")

    session_manager = StreamableHTTPSessionManager(
        app=mcp_server,
        event_store=None,
        json_response=False,
        stateless=stateless,
    )

    class StreamableHTTPRoute:
        """ASGI app wrapper for the streamable HTTP handler"""
        async def __call__(self, scope, receive, send):
            await session_manager.handle_request(scope, receive, send)

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        async with session_manager.run():
            logger.info("Streamable HTTP session manager started")
            try:
                yield
            finally:
                logger.info("Streamable HTTP session manager shutting down")

    starlette_app = Starlette(
        debug=debug,
        routes=[
            Route("/mcp", endpoint=StreamableHTTPRoute()),
        ],
        lifespan=lifespan,
    )

    starlette_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["mcp-session-id", "mcp-protocol-version"],
    )

    return starlette_app


@app.list_tools()
async def list_tools() -> list[Tool]:
    tools = [handler.get_tool_definition() for handler in tool_handlers.values()]
    logger.info(f"Listed {len(tools)} available tools")
    return tools


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> Sequence[TextContent | ImageContent | EmbeddedResource]:
    """
    Execute a tool with the provided arguments.

    Errors are returned as text content rather than raised.
    """
    try:
        if not isinstance(arguments, dict):
            raise RuntimeError("Arguments must be a dictionary")

        tool_handler = get_tool_handler(name)
        if not tool_handler:
            raise ValueError(f"Unknown tool: {name}")

        logger.info(f"Executing tool: {name} with arguments: {list(arguments.keys())}")
        result = await tool_handler.run_tool(arguments)
        logger.info(f"Tool {name} executed successfully")
        return result

    except Exception as e:
        logger.exception(f"Error executing tool {name}: {str(e)}")
        logger.debug(f"Full traceback: {traceback.format_exc()}")

        return [
            TextContent(
                type="text",
                text=f"Error executing tool '{name}': {str(e)}"
            )
        ]


def initialize_sql_driver(database_url: str) -> None:
    """Create the shared driver. The connection itself opens on first query."""
    global sql_driver
    sql_driver = SqlDriver(DbConnection(database_url))


async def cleanup_sql_driver() -> None:
    global sql_driver
    if sql_driver is not None:
        await sql_driver.close()
        sql_driver = None


async def main():
    """
    Main entry point for the pgadvisor-mcp server.
    """
    parser = argparse.ArgumentParser(
        description='pgadvisor-mcp: PostgreSQL schema optimization advisor - supports stdio and streamable-http modes'
    )
    parser.add_argument(
        '--mode',
        choices=['stdio', 'streamable-http'],
        default='stdio',
        help='Server mode: stdio (default) or streamable-http'
    )
    parser.add_argument(
        '--host',
        default='0.0.0.0',
        help='Host to bind to (HTTP mode only, default: 0.0.0.0)'
    )
    parser.add_argument(
        '--port',
        type=int,
        default=None,
        help='Port to listen on (HTTP mode only, default: from PORT env var or 8080)'
    )
    parser.add_argument(
        '--stateless',
        action='store_true',
        help='Run in stateless mode (creates fresh transport per request)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug mode'
    )
    parser.add_argument(
        '--database-url',
        default=None,
        help='PostgreSQL connection URL (or use DATABASE_URI / DB_* env vars)'
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    port = args.port if args.port is not None else int(os.environ.get("PORT", 8080))

    try:
        database_url = args.database_url or DatabaseSettings.from_env().conninfo()

        if not database_url:
            logger.error("No database URL provided. Set DATABASE_URI or DB_* environment variables, or use --database-url")
            sys.exit(1)

        initialize_sql_driver(database_url)
        register_all_tools()

        logger.info(f"Starting pgadvisor_mcp server in {args.mode} mode...")
        logger.info(f"Registered tools: {list(tool_handlers.keys())}")

        await run_server(args.mode, args.host, port, args.debug, args.stateless)

    except Exception as e:
        logger.exception(f"Failed to start server: {str(e)}")
        raise
    finally:
        await cleanup_sql_driver()


async def run_server(mode: str, host: str = "0.0.0.0", port: int = 8080, debug: bool = False, stateless: bool = False):
    """
    Run the MCP server in stdio or streamable-http mode.
    """
    if mode == "stdio":
        logger.info("Starting stdio server...")

        from mcp.server.stdio import stdio_server

        async with stdio_server() as (read_stream, write_stream):
            await app.run(
                read_stream,
                write_stream,
                app.create_initialization_options()
            )

    elif mode == "streamable-http":
        if not HTTP_AVAILABLE:
            raise RuntimeError(
                "Streamable HTTP mode requires additional dependencies. "
                "Install with: pip install pgadvisor-mcp[http]"
            )

        mode_desc = "stateless" if stateless else "stateful"
        logger.info(f"Starting Streamable HTTP server ({mode_desc}) on {host}:{port}...")
        logger.info(f"Endpoint: http://{host}:{port}/mcp")

        starlette_app = create_streamable_http_app(app, debug=debug, stateless=stateless)

        config = uvicorn.Config(
            app=starlette_app,
            host=host,
            port=port,
            log_level="debug" if debug else "info"
        )
        server = uvicorn.Server(config)
        await server.serve()

    else:
        raise ValueError(f"Unknown mode: {mode}")
