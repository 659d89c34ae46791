"""MCP server wiring for bitbucket-mcp.

The server is built around an explicitly constructed `Runtime`; nothing here holds
module-level client or configuration state.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

try:
    from mcp.server import Server
    from mcp.shared.exceptions import McpError
    from mcp.types import (
        INTERNAL_ERROR,
        INVALID_PARAMS,
        METHOD_NOT_FOUND,
        CallToolRequest,
        CallToolResult,
        ErrorData,
        Resource,
        ServerResult,
        TextContent,
        Tool,
    )
except ImportError as exc:  # pragma: no cover
    raise ImportError("MCP library not installed. Install with: pip install mcp") from exc

from . import __version__
from . import errors
from .config import load_config_from_env
from .safety import configure_logging
from .schemas import TOOL_METADATA, list_tool_definitions
from .tools import Dispatcher, Runtime, build_runtime

logger = logging.getLogger(__name__)

SERVER_NAME = "bitbucket-mcp"
STATUS_URI = "bitbucket-mcp://server-status"
CAPABILITIES_URI = "bitbucket-mcp://capabilities"

_PROTOCOL_CODES = {
    errors.METHOD_NOT_FOUND: METHOD_NOT_FOUND,
    errors.INVALID_PARAMS: INVALID_PARAMS,
    errors.INTERNAL_ERROR: INTERNAL_ERROR,
}


def to_protocol_error(err: errors.SafeError) -> McpError:
    """Map a SafeError onto the JSON-RPC error it is reported as."""
    code = _PROTOCOL_CODES.get(err.code, INTERNAL_ERROR)
    return McpError(ErrorData(code=code, message=err.message))


def build_tools() -> list[Tool]:
    return [
        Tool(name=d["name"], description=d["description"], inputSchema=d["inputSchema"])
        for d in list_tool_definitions()
    ]


def build_resources() -> list[Resource]:
    return [
        Resource(
            uri=STATUS_URI,
            name="Server Status",
            description="Non-secret server configuration",
            mimeType="application/json",
        ),
        Resource(
            uri=CAPABILITIES_URI,
            name="Capabilities",
            description="Allow-listed operations and safety constraints",
            mimeType="application/json",
        ),
    ]


def render_resource(runtime: Runtime, uri: str) -> str:
    """Render the JSON body of a server resource."""
    if uri == CAPABILITIES_URI:
        caps = {
            "server": SERVER_NAME,
            "version": __version__,
            "allow_listed_operations": list(TOOL_METADATA),
            "safety": {
                "delete_operations_on_primary_resources": False,
                "retries": False,
                "credentials_in_logs": False,
            },
        }
        return json.dumps(caps, indent=2)

    if uri == STATUS_URI:
        status: dict[str, Any] = {
            "server": SERVER_NAME,
            "version": __version__,
            "tools_available": len(TOOL_METADATA),
            "tool_names": list(TOOL_METADATA),
            "configuration": runtime.config.describe(),
        }
        return json.dumps(status, indent=2)

    return json.dumps({"ok": False, "code": "NotFound", "message": "Unknown resource"}, indent=2)


def create_server(runtime: Runtime) -> Server:
    """Create an MCP server bound to `runtime`."""
    server: Server = Server(SERVER_NAME)
    dispatcher = Dispatcher(runtime)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List all available tools."""
        tools = build_tools()
        logger.info("Listed %s tools", len(tools))
        return tools

    async def call_tool(request: CallToolRequest) -> ServerResult:
        """Execute a tool; failures surface as JSON-RPC errors carrying their code."""
        name = request.params.name
        logger.info("Tool called: %s", name)
        try:
            result = await dispatcher.dispatch(name, request.params.arguments)
        except errors.SafeError as err:
            logger.warning("Tool %s failed: %s", name, err.code)
            raise to_protocol_error(err) from None
        content = [TextContent(type="text", text=block["text"]) for block in result["content"]]
        return ServerResult(CallToolResult(content=content, isError=False))

    # Raw handler: SafeError must reach the session as a JSON-RPC error, and the
    # dispatcher is the only argument validator.
    server.request_handlers[CallToolRequest] = call_tool

    @server.list_resources()
    async def list_resources() -> list[Resource]:
        """List available resources."""
        return build_resources()

    @server.read_resource()
    async def read_resource(uri: Any) -> str:
        """Read resource content."""
        return render_resource(runtime, uri if isinstance(uri, str) else str(uri))

    return server


async def run_server(log_level: str | None = None) -> None:
    """Run the server over stdio."""
    configure_logging(log_level or os.getenv("BITBUCKET_MCP_LOG_LEVEL", "INFO"))

    # Fail fast on invalid/missing host configuration.
    try:
        config = load_config_from_env()
    except errors.SafeError as exc:
        logger.error("Startup configuration error: %s", exc.message)
        raise

    logger.info("Bitbucket MCP configuration: %s", config.describe())
    runtime = build_runtime(config)
    server = create_server(runtime)

    from mcp.server.stdio import stdio_server

    try:
        async with stdio_server() as (read_stream, write_stream):
            logger.info("Bitbucket MCP server running on stdio")
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await runtime.aclose()


async def test_server() -> None:
    """Lightweight self-test to ensure tool/resource descriptors build."""
    tools = build_tools()
    resources = build_resources()
    logger.info("Self-test ok: %s tools, %s resources", len(tools), len(resources))
