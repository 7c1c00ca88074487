"""MCPClient — drives an MCP automation host over an :class:`MCPTransport`.

Implements the ``initialize`` handshake, tool discovery (``tools/list``)
and execution (``tools/call``). The transport is injected, so the same
client works against a spawned host or an HTTP endpoint.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any

from browser_relay import __version__
from browser_relay.protocols.errors import (
    ClientClosedError,
    CorrelationTimeoutError,
    NotInitializedError,
    RPCError,
)
from browser_relay.protocols.mcp.models import (
    CallToolParams,
    InitializeParams,
    InitializeResult,
    JsonRpcMessage,
    ListToolsResult,
    Tool,
    ToolResult,
)
from browser_relay.protocols.mcp.transport import MCPTransport
from browser_relay.utils.telemetry import (
    ATTR_RPC_ID,
    ATTR_RPC_METHOD,
    ATTR_TOOL_NAME,
    ATTR_TRANSPORT,
    get_tracer,
)

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

PROTOCOL_VERSION = "2024-11-05"


class MCPClient:
    """Async context manager that connects to an MCP automation host.

    Usage::

        transport = StdioTransport("node", ["mcp-server-stdio.js"])
        async with MCPClient(transport) as client:
            tools = await client.list_tools()
            result = await client.call_tool("chrome_navigate", {"url": "https://example.com"})

    A client must be initialized before any tool call and cannot be reused
    after :meth:`close`. Request ids are strictly increasing per client.
    Cancelling a call, or letting its ``timeout`` expire, abandons the wait
    locally only: the host is not told to stop.
    """

    def __init__(
        self,
        transport: MCPTransport,
        *,
        client_name: str = "browser-relay",
        client_version: str = __version__,
        protocol_version: str = PROTOCOL_VERSION,
    ) -> None:
        self._transport = transport
        self._client_name = client_name
        self._client_version = client_version
        self._protocol_version = protocol_version
        self._id_lock = threading.Lock()
        self._last_id = 0
        self._initialized = False
        self._closed = False
        self.server_info: InitializeResult | None = None

    async def __aenter__(self) -> MCPClient:
        await self.initialize()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    @property
    def transport(self) -> MCPTransport:
        return self._transport

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def closed(self) -> bool:
        return self._closed

    def next_request_id(self) -> int:
        """Allocate the next request id."""
        with self._id_lock:
            self._last_id += 1
            return self._last_id

    async def initialize(self, timeout: float | None = None) -> InitializeResult:
        """Connect the transport and perform the ``initialize`` handshake."""
        if self._closed:
            raise ClientClosedError
        await self._transport.connect()

        params = InitializeParams(
            protocol_version=self._protocol_version,
            capabilities={},
            client_info={"name": self._client_name, "version": self._client_version},
        )
        response = await self._request(
            "initialize", params.model_dump(by_alias=True), timeout=timeout
        )
        self.server_info = response.decode_result(InitializeResult)
        self._initialized = True
        logger.debug(
            "Initialized MCP session with %s", self.server_info.server_info.get("name", "host")
        )
        return self.server_info

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> ToolResult:
        """Send ``tools/call`` for the named tool.

        Results flagged ``isError`` are returned as-is; only JSON-RPC error
        responses raise :class:`RPCError`.
        """
        self._require_ready()
        params = CallToolParams(name=name, arguments=arguments or {})
        response = await self._request(
            "tools/call", params.model_dump(), timeout=timeout, tool_name=name
        )
        return response.decode_result(ToolResult)

    async def list_tools(self, timeout: float | None = None) -> list[Tool]:
        """Send ``tools/list`` and return the host's tool definitions."""
        self._require_ready()
        response = await self._request("tools/list", timeout=timeout)
        return response.decode_result(ListToolsResult).tools

    async def ping(self, timeout: float | None = None) -> None:
        """Check the host is alive by listing its tools."""
        await self.list_tools(timeout=timeout)

    async def close(self) -> None:
        """Mark the client closed and close the transport."""
        if self._closed:
            return
        self._initialized = False
        self._closed = True
        await self._transport.close()

    def _require_ready(self) -> None:
        if self._closed:
            raise ClientClosedError
        if not self._initialized:
            raise NotInitializedError

    async def _request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
        tool_name: str | None = None,
    ) -> JsonRpcMessage:
        """Send a JSON-RPC request and wait for its correlated response."""
        request_id = self.next_request_id()
        message = JsonRpcMessage.request(request_id, method, params)

        with _tracer.start_as_current_span("mcp.request") as span:
            span.set_attribute(ATTR_RPC_METHOD, method)
            span.set_attribute(ATTR_RPC_ID, request_id)
            span.set_attribute(ATTR_TRANSPORT, type(self._transport).__name__)
            if tool_name:
                span.set_attribute(ATTR_TOOL_NAME, tool_name)

            try:
                response = await asyncio.wait_for(self._transport.request(message), timeout)
            except asyncio.TimeoutError as exc:
                msg = f"{method} id={request_id} timed out after {timeout}s"
                raise CorrelationTimeoutError(msg, request_id=request_id) from exc

            if response.error is not None:
                span.set_attribute("error", True)
                raise RPCError(
                    method, response.error.code, response.error.message, response.error.data
                )
        return response
