"""MCP stdio server over the kubegate ToolRegistry.

Uses the low-level ``mcp`` Server: ``list_tools`` publishes each tool's
pydantic JSON schema and ``call_tool`` returns a CallToolResult holding one
JSON text block, with ``isError`` set for guard, validation and upstream
failures.
"""

from __future__ import annotations

import json
from typing import Any

from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from kubegate.mcp.tools import ToolRegistry, ToolResult
from kubegate.observability.logging import get_logger

_log = get_logger("mcp.server")


def to_call_tool_result(result: ToolResult) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=json.dumps(result.payload, default=str))],
        isError=result.is_error,
    )


def build_server(registry: ToolRegistry, name: str = "kubegate", version: str = "") -> Server:
    """Create an mcp Server whose handlers delegate to *registry*."""
    server: Server = Server(name, version=version or None)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(name=spec.name, description=spec.description, inputSchema=spec.input_schema())
            for spec in registry.specs()
        ]

    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> types.CallToolResult:
        return to_call_tool_result(await registry.invoke(name, arguments))

    return server


class MCPServer:
    """Runs the MCP server on stdin/stdout until the stream closes or stop() is called."""

    def __init__(self, registry: ToolRegistry, name: str = "kubegate") -> None:
        from kubegate import __version__

        self._registry = registry
        self._server = build_server(registry, name=name, version=__version__)
        self._running = False

    @property
    def server(self) -> Server:
        return self._server

    async def start(self) -> None:
        self._running = True
        _log.info("mcp_server_listening", transport="stdio", tools=len(self._registry.specs()))
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self._server.run(
                    read_stream,
                    write_stream,
                    self._server.create_initialization_options(),
                )
        finally:
            self._running = False
            _log.info("mcp_server_stopped")

    async def stop(self) -> None:
        # The stdio loop ends when its task is cancelled by the app.
        self._running = False
