"""Relay configuration — which automation host to use and how to reach it.

Settings are explicit values passed to the factories below; nothing here is
kept in module-level state.
"""

from __future__ import annotations

import logging
import os
import shlex
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Literal

import httpx
from pydantic import BaseModel, Field, model_validator

from browser_relay.protocols.errors import ServerNotFoundError
from browser_relay.protocols.mcp.client import MCPClient
from browser_relay.protocols.mcp.transport import (
    DEFAULT_RECEIVE_TIMEOUT,
    HTTPTransport,
    MCPTransport,
    StdioTransport,
)

if TYPE_CHECKING:
    from browser_relay.fetch.fetcher import Fetcher
    from browser_relay.protocols.mcp.tools import BrowserTools

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "http://127.0.0.1:12306/mcp"
DEFAULT_PING_URL = "http://127.0.0.1:12306/ping"

# Where the MCP-Chrome native server usually installs its stdio entrypoint.
STDIO_SCRIPT_CANDIDATES = (
    ".mcp-chrome/mcp-chrome/app/native-server/dist/mcp/mcp-server-stdio.js",
    ".mcp-chrome/mcp-chrome-bridge/dist/mcp/mcp-server-stdio.js",
    ".local/share/mcp-chrome/dist/mcp/mcp-server-stdio.js",
)

_TRUTHY = {"1", "true", "yes", "on"}


class RelaySettings(BaseModel):
    """How to reach the automation host."""

    enabled: bool = False
    transport: Literal["stdio", "http"] = "http"
    command: str | None = "node"
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] | None = None
    server_url: str | None = DEFAULT_SERVER_URL
    receive_timeout: float = DEFAULT_RECEIVE_TIMEOUT
    request_timeout: float = 30.0

    @model_validator(mode="after")
    def _validate_transport(self) -> RelaySettings:
        if self.transport == "stdio" and not self.command:
            msg = "stdio transport requires 'command'"
            raise ValueError(msg)
        if self.transport == "http" and not self.server_url:
            msg = "http transport requires 'server_url'"
            raise ValueError(msg)
        return self

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RelaySettings:
        """Build settings from ``MCP_*`` environment variables."""
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        if url := env.get("MCP_SERVER_URL"):
            values["server_url"] = url
            values["transport"] = "http"
        if transport := env.get("MCP_TRANSPORT"):
            values["transport"] = transport
        if command := env.get("MCP_COMMAND"):
            values["command"] = command
        if args := env.get("MCP_ARGS"):
            values["args"] = shlex.split(args)
        if enabled := env.get("BROWSER_RELAY_ENABLED"):
            values["enabled"] = enabled.strip().lower() in _TRUTHY
        return cls.model_validate(values)


async def discover_server(
    environ: Mapping[str, str] | None = None,
    *,
    probe_timeout: float = 2.0,
    ping_url: str = DEFAULT_PING_URL,
    server_url: str = DEFAULT_SERVER_URL,
    home: Path | None = None,
) -> RelaySettings:
    """Locate a reachable host.

    Order: ``MCP_SERVER_URL``; a local HTTP host answering ``ping_url``; the
    first installed stdio script under *home* (run with ``node``).
    """
    env = os.environ if environ is None else environ

    if url := env.get("MCP_SERVER_URL"):
        logger.debug("Using MCP_SERVER_URL %s", url)
        return RelaySettings(enabled=True, transport="http", server_url=url)

    try:
        async with httpx.AsyncClient(timeout=probe_timeout) as client:
            response = await client.get(ping_url)
        if response.status_code == 200:
            logger.debug("Local MCP host answered %s", ping_url)
            return RelaySettings(enabled=True, transport="http", server_url=server_url)
    except httpx.HTTPError as exc:
        logger.debug("No local MCP host at %s: %s", ping_url, exc)

    base = home if home is not None else Path(env.get("HOME") or Path.home())
    for candidate in STDIO_SCRIPT_CANDIDATES:
        path = base / candidate
        if path.exists():
            logger.debug("Found stdio MCP host script %s", path)
            return RelaySettings(enabled=True, transport="stdio", command="node", args=[str(path)])

    msg = "MCP server not found"
    raise ServerNotFoundError(msg)


def create_transport(settings: RelaySettings) -> MCPTransport:
    """Build the transport named by *settings*."""
    if settings.transport == "stdio":
        assert settings.command is not None
        return StdioTransport(
            settings.command,
            settings.args,
            env=settings.env,
            receive_timeout=settings.receive_timeout,
        )
    assert settings.server_url is not None
    return HTTPTransport(settings.server_url, timeout=settings.receive_timeout)


async def connect(settings: RelaySettings) -> MCPClient:
    """Return an initialized client for *settings*."""
    client = MCPClient(create_transport(settings))
    try:
        await client.initialize(timeout=settings.request_timeout)
    except BaseException:
        await client.close()
        raise
    return client


def create_fetcher(settings: RelaySettings, tools: BrowserTools | None = None) -> Fetcher:
    """Pick the fetcher once: browser-relayed when enabled and *tools* given."""
    from browser_relay.fetch.fetcher import BrowserFetcher, HTTPFetcher

    if settings.enabled and tools is not None:
        return BrowserFetcher(tools, timeout=settings.request_timeout)
    return HTTPFetcher(timeout=settings.request_timeout)
