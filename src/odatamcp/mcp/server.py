"""MCP server exposing OData entity sets as tools over stdio."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from odatamcp.config.serving_models import ServerConfig
from odatamcp.mcp.backend import ODataBackend
from odatamcp.mcp.dispatcher import OperationDispatcher
from odatamcp.schema import load_schema

LOG = logging.getLogger("odatamcp.mcp.server")

SERVER_NAME = "odata-mcp-server"
SERVER_VERSION = "1.0.0"


class ToolCallError(RuntimeError):
    """Raised to the MCP SDK so the call result is flagged ``isError``."""


def create_mcp_server(dispatcher: OperationDispatcher) -> Server:
    """
    Create the MCP server with list/call handlers bound to a dispatcher.

    Parameters
    ----------
    dispatcher:
        Dispatcher holding the immutable catalog.

    Returns
    -------
    mcp.server.Server
        Configured low-level MCP server.
    """
    server: Server = Server(SERVER_NAME, version=SERVER_VERSION)
    tools = [descriptor.to_tool() for descriptor in dispatcher.list_operations()]

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return tools

    # Arguments are coerced and clamped by the dispatcher, not rejected by schema.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        result = await dispatcher.invoke_operation(name, arguments or {})
        if result.is_error:
            problem = result.problem
            message = problem.detail if problem is not None and problem.detail else "Tool call failed"
            raise ToolCallError(message)
        return [types.TextContent(type="text", text=result.body or "")]

    return server


async def serve(config: ServerConfig) -> None:
    """
    Load the schema, build the catalog, and serve MCP over stdio.

    Parameters
    ----------
    config:
        Startup configuration.

    Raises
    ------
    odatamcp.schema.SchemaLoadError
        When the metadata document cannot be fetched or parsed.
    """
    async with httpx.AsyncClient(timeout=config.timeout_seconds) as client:
        schema = await load_schema(config.metadata_url, client)
        backend = ODataBackend(base_url=config.base_url, timeout=config.timeout_seconds, client=client)
        dispatcher = OperationDispatcher(schema=schema, toggles=config.toggles, backend=backend)
        server = create_mcp_server(dispatcher)
        LOG.info("Starting MCP bridge to %s", config.metadata_url)
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
