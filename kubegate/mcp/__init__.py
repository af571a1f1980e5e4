"""MCP (Model Context Protocol) surface for kubegate.

Exposes:
    MCPServer          -- stdio transport server.
    ToolRegistry       -- name -> parameter model + handler, shared with the HTTP API.
    build_tool_registry -- registers every kubegate tool against the dispatchers.
"""

from kubegate.mcp.server import MCPServer
from kubegate.mcp.tools import ToolRegistry, ToolResult, ToolSpec, build_tool_registry

__all__ = ["MCPServer", "ToolRegistry", "ToolResult", "ToolSpec", "build_tool_registry"]
