"""browser-relay CLI entrypoint."""

from __future__ import annotations

import logging

import click

from browser_relay import __version__
from browser_relay.utils.telemetry import EXPORTERS, configure_telemetry


@click.group()
@click.version_option(version=__version__, prog_name="browser-relay")
@click.option("-v", "--verbose", is_flag=True, help="Log protocol traffic at DEBUG level.")
@click.option(
    "--trace",
    type=click.Choice(EXPORTERS),
    default=None,
    help="Export request spans (needs the otel extra).",
)
@click.option(
    "--otlp-endpoint",
    envvar="OTEL_EXPORTER_OTLP_ENDPOINT",
    default=None,
    help="Collector endpoint for --trace otlp.",
)
def main(verbose: bool, trace: str | None, otlp_endpoint: str | None) -> None:
    """browser-relay — drive a browser automation host over MCP."""
    if verbose:
        from rich.logging import RichHandler

        logging.basicConfig(
            level=logging.DEBUG,
            format="%(name)s: %(message)s",
            handlers=[RichHandler(show_path=False)],
        )
    if trace:
        try:
            configure_telemetry(trace, otlp_endpoint=otlp_endpoint)  # type: ignore[arg-type]
        except ImportError as exc:
            raise click.ClickException(str(exc)) from exc


# Register subcommands
from browser_relay.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
