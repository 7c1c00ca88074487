"""MCP protocol — Model Context Protocol client for browser automation hosts."""

from browser_relay.protocols.mcp.client import MCPClient
from browser_relay.protocols.mcp.models import (
    JsonRpcError,
    JsonRpcMessage,
    Tool,
    ToolMeta,
    ToolResult,
)
from browser_relay.protocols.mcp.tools import (
    CHROME_TOOLS,
    BrowserTools,
    NetworkRequestOptions,
    ToolNames,
)
from browser_relay.protocols.mcp.transport import HTTPTransport, MCPTransport, StdioTransport

__all__ = [
    "CHROME_TOOLS",
    "BrowserTools",
    "HTTPTransport",
    "JsonRpcError",
    "JsonRpcMessage",
    "MCPClient",
    "MCPTransport",
    "NetworkRequestOptions",
    "StdioTransport",
    "Tool",
    "ToolMeta",
    "ToolNames",
    "ToolResult",
]
