"""``browser-relay ping`` — check that an automation host is reachable."""

from __future__ import annotations

import asyncio
import sys

import click

from browser_relay.cli_commands._output import console, print_install_hints, print_tools_table
from browser_relay.cli_commands._session import host_options, resolve_settings
from browser_relay.config import connect
from browser_relay.protocols.errors import ProtocolError
from browser_relay.protocols.mcp.models import Tool
from browser_relay.protocols.mcp.tools import CHROME_TOOLS

PING_TIMEOUT = 15.0


@click.command("ping")
@host_options
def ping(url: str | None, command: str | None, args: tuple[str, ...]) -> None:
    """Ping the MCP host and check the browser tools it exposes."""

    async def _ping() -> list[Tool]:
        settings = await resolve_settings(url, command, args)
        target = settings.server_url if settings.transport == "http" else settings.command
        console.print(f"Using {settings.transport} transport: {target}")
        client = await connect(settings)
        try:
            await client.ping(timeout=PING_TIMEOUT)
            return await client.list_tools(timeout=PING_TIMEOUT)
        finally:
            await client.close()

    console.print("[cyan]Testing MCP host connection...[/cyan]")
    try:
        tools = asyncio.run(_ping())
    except ProtocolError as exc:
        console.print(f"[red]MCP host ping failed:[/red] {exc}")
        print_install_hints()
        sys.exit(1)

    console.print("[green]MCP host is running![/green]")
    print_tools_table(tools)

    available = {tool.name for tool in tools}
    missing = [name for name in CHROME_TOOLS.required() if name not in available]
    if missing:
        console.print("[yellow]Some Chrome tools are missing:[/yellow]")
        for name in missing:
            console.print(f"  - {name}")
    else:
        console.print("[green]All Chrome tools are available![/green]")
