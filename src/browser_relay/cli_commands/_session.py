"""Shared host selection for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from browser_relay.config import RelaySettings, discover_server

if TYPE_CHECKING:
    from collections.abc import Callable


def host_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add ``--url`` / ``--command`` / ``--arg`` options to a command."""

    func = click.option("--arg", "args", multiple=True, help="Argument for --command (repeatable).")(func)
    func = click.option("--command", "command", default=None, help="MCP host command (stdio transport).")(func)
    return click.option("--url", default=None, help="MCP host URL (HTTP transport).")(func)


async def resolve_settings(
    url: str | None, command: str | None, args: tuple[str, ...]
) -> RelaySettings:
    """Explicit options win; otherwise discover a host."""
    if url:
        return RelaySettings(enabled=True, transport="http", server_url=url)
    if command:
        return RelaySettings(enabled=True, transport="stdio", command=command, args=list(args))
    return await discover_server()
