"""Shared CLI output formatters."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from browser_relay.protocols.mcp.models import Tool, ToolResult

console = Console()

INSTALL_HINTS = """
[bold]Installation guide[/bold]

1. Install the MCP-Chrome extension:
   git clone https://github.com/hangwin/mcp-chrome.git ~/.mcp-chrome/mcp-chrome
   then load ~/.mcp-chrome/mcp-chrome/app/chrome-extension unpacked from chrome://extensions/

2. Install and register the native host:
   cd ~/.mcp-chrome/mcp-chrome/app/native-server && pnpm install && pnpm build && pnpm run register

3. Point browser-relay at it, for example:
   export MCP_SERVER_URL=http://127.0.0.1:12306/mcp

4. Verify:
   browser-relay ping
"""


def print_tools_table(tools: list[Tool]) -> None:
    """Pretty-print host tools as a table."""
    table = Table(title=f"Available Tools ({len(tools)})")
    table.add_column("Name", style="cyan")
    table.add_column("Description")

    for tool in tools:
        table.add_row(tool.name, _truncate(tool.description))

    console.print(table)


def print_tool_result(result: ToolResult) -> None:
    """Print a tool result's content as JSON."""
    style = "red" if result.is_error else "green"
    console.print(f"[{style}]isError: {result.is_error}[/{style}]")
    console.print_json(json.dumps(result.content, default=str))


def print_install_hints() -> None:
    console.print(INSTALL_HINTS)


def print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
