"""Protocol layer — the MCP client and its error taxonomy."""

from browser_relay.protocols.errors import (
    BrowserToolError,
    ClientClosedError,
    ClientStateError,
    CorrelationTimeoutError,
    DecodeError,
    FetchError,
    NotInitializedError,
    ProtocolError,
    RPCError,
    ServerNotFoundError,
    ToolExecutionError,
    TransportError,
)

__all__ = [
    "BrowserToolError",
    "ClientClosedError",
    "ClientStateError",
    "CorrelationTimeoutError",
    "DecodeError",
    "FetchError",
    "NotInitializedError",
    "ProtocolError",
    "RPCError",
    "ServerNotFoundError",
    "ToolExecutionError",
    "TransportError",
]
