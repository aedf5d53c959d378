"""MCP server wiring: stdio transport, logging and process entry point."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from typing import TYPE_CHECKING

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from mcp_llm import __version__
from mcp_llm.config import Config
from mcp_llm.errors import ConfigurationError
from mcp_llm.factory import check_config
from mcp_llm.handlers import ToolHandlers
from mcp_llm.tools import TOOLS

if TYPE_CHECKING:
    from collections.abc import Mapping

log = logging.getLogger(__name__)

SERVER_NAME = "mcp-llm"
_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(environ: Mapping[str, str] | None = None) -> None:
    """Send logs to stderr; stdout is reserved for the stdio transport."""
    environ = os.environ if environ is None else environ
    level_name = environ.get("LLM_LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=_LOG_FORMAT, stream=sys.stderr, force=True)


def create_server(config: Config, *, handlers: ToolHandlers | None = None) -> Server:
    """Build an MCP server exposing the tool catalogue."""
    handlers = handlers or ToolHandlers(config)
    server: Server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return TOOLS

    async def call_tool(request: types.CallToolRequest) -> types.ServerResult:
        # Registered directly rather than via @server.call_tool(): that
        # decorator turns every exception into an isError result, while
        # unknown tools and invalid arguments must stay JSON-RPC errors.
        result = await handlers.dispatch(request.params.name, request.params.arguments)
        return types.ServerResult(result)

    server.request_handlers[types.CallToolRequest] = call_tool
    return server


async def serve(config: Config) -> None:
    """Serve requests over stdio until the client disconnects."""
    server = create_server(config)
    async with stdio_server() as (read_stream, write_stream):
        log.info("%s server running on stdio", SERVER_NAME)
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def load_config(environ: Mapping[str, str] | None = None) -> Config:
    """Resolve and check configuration, exiting with status 1 when unusable."""
    try:
        config = Config.from_env(environ)
        check_config(config)
    except ConfigurationError as e:
        hint = f" ({e.hint})" if e.hint else ""
        log.critical("Error: %s%s", e, hint)
        print(f"Error: {e}{hint}", file=sys.stderr)
        raise SystemExit(1) from e
    return config


def main() -> None:
    """Console entry point for ``mcp-llm``."""
    configure_logging()
    config = load_config()
    log.info("Starting %s %s with %s", SERVER_NAME, __version__, config)
    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        log.info("Interrupted; shutting down")


if __name__ == "__main__":
    main()
