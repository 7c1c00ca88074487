"""``browser-relay fetch`` — retrieve a URL directly or through the browser."""

from __future__ import annotations

import asyncio
import sys

import click

from browser_relay.cli_commands._output import console, print_json
from browser_relay.cli_commands._session import host_options, resolve_settings
from browser_relay.config import RelaySettings, connect, create_fetcher
from browser_relay.protocols.errors import ProtocolError
from browser_relay.protocols.mcp.tools import BrowserTools


@click.command("fetch")
@click.argument("target_url")
@click.option("--browser", is_flag=True, help="Relay the request through the browser.")
@click.option("--json", "as_json", is_flag=True, help="Decode the body as JSON.")
@host_options
def fetch(
    target_url: str,
    browser: bool,
    as_json: bool,
    url: str | None,
    command: str | None,
    args: tuple[str, ...],
) -> None:
    """Fetch TARGET_URL and print its body."""

    async def _fetch() -> bytes | dict[str, object]:
        if not browser:
            fetcher = create_fetcher(RelaySettings())
            try:
                return await (fetcher.get_json(target_url) if as_json else fetcher.get(target_url))
            finally:
                await fetcher.close()

        settings = await resolve_settings(url, command, args)
        client = await connect(settings)
        try:
            fetcher = create_fetcher(settings, BrowserTools(client))
            return await (fetcher.get_json(target_url) if as_json else fetcher.get(target_url))
        finally:
            await client.close()

    try:
        body = asyncio.run(_fetch())
    except ProtocolError as exc:
        console.print(f"[red]Fetch error:[/red] {exc}")
        sys.exit(1)

    if isinstance(body, dict):
        print_json(body)
    else:
        click.echo(body.decode(errors="replace"))
