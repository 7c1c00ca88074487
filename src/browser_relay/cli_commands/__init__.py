"""CLI subcommand registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all subcommands on the CLI group."""
    from browser_relay.cli_commands.fetch import fetch
    from browser_relay.cli_commands.ping import ping
    from browser_relay.cli_commands.tools import tools

    cli.add_command(ping)
    cli.add_command(tools)
    cli.add_command(fetch)
