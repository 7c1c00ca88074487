"""``browser-relay tools`` — list and invoke host tools."""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any

import click

from browser_relay.cli_commands._output import console, print_tool_result, print_tools_table
from browser_relay.cli_commands._session import host_options, resolve_settings
from browser_relay.config import connect
from browser_relay.protocols.errors import ProtocolError
from browser_relay.protocols.mcp.models import Tool, ToolResult


@click.group()
def tools() -> None:
    """List and invoke host tools."""


@tools.command("list")
@host_options
def list_cmd(url: str | None, command: str | None, args: tuple[str, ...]) -> None:
    """List the tools the MCP host exposes."""

    async def _list() -> list[Tool]:
        client = await connect(await resolve_settings(url, command, args))
        try:
            return await client.list_tools()
        finally:
            await client.close()

    try:
        found = asyncio.run(_list())
    except ProtocolError as exc:
        console.print(f"[red]Discovery error:[/red] {exc}")
        sys.exit(1)

    if not found:
        console.print("[yellow]No tools discovered.[/yellow]")
        return
    print_tools_table(found)


@tools.command("call")
@click.argument("name")
@click.option("--args", "arguments", default="{}", help="Tool arguments as a JSON object.")
@host_options
def call_cmd(
    name: str,
    arguments: str,
    url: str | None,
    command: str | None,
    args: tuple[str, ...],
) -> None:
    """Invoke tool NAME and print its result."""
    try:
        parsed: Any = json.loads(arguments)
    except ValueError as exc:
        raise click.BadParameter(f"not valid JSON: {exc}", param_hint="--args") from exc
    if not isinstance(parsed, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--args")

    async def _call() -> ToolResult:
        client = await connect(await resolve_settings(url, command, args))
        try:
            return await client.call_tool(name, parsed)
        finally:
            await client.close()

    try:
        result = asyncio.run(_call())
    except ProtocolError as exc:
        console.print(f"[red]Tool call error:[/red] {exc}")
        sys.exit(1)

    print_tool_result(result)
    if result.is_error:
        sys.exit(1)
