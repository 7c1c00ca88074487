"""Tracing for browser-relay.

Library code only ever calls :func:`get_tracer`; spans are no-ops until an
application (the CLI's ``--trace`` option) installs a provider with
:func:`configure_telemetry`. Exporters need the ``otel`` extra.
"""

from __future__ import annotations

from typing import Any, Literal

from opentelemetry import trace

ATTR_RPC_METHOD = "relay.rpc.method"
ATTR_RPC_ID = "relay.rpc.id"
ATTR_TOOL_NAME = "relay.tool.name"
ATTR_TRANSPORT = "relay.transport"
ATTR_FETCH_URL = "relay.fetch.url"
ATTR_FETCH_MODE = "relay.fetch.mode"

_INSTRUMENTATION_NAME = "browser_relay"

Exporter = Literal["console", "otlp"]
EXPORTERS: tuple[Exporter, ...] = ("console", "otlp")


def get_tracer(name: str | None = None) -> trace.Tracer:
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def configure_telemetry(
    exporter: Exporter,
    *,
    service_name: str = "browser-relay",
    otlp_endpoint: str | None = None,
) -> None:
    """Install a global tracer provider that ships spans to *exporter*.

    ``console`` prints each span as it ends; ``otlp`` batches them to
    *otlp_endpoint* (or the exporter's own default) over gRPC.

    Raises ImportError naming the missing package when the ``otel`` extra
    is not installed, and ValueError for an unknown exporter.
    """
    if exporter not in EXPORTERS:
        msg = f"unknown trace exporter {exporter!r}, expected one of {', '.join(EXPORTERS)}"
        raise ValueError(msg)

    try:
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor
    except ImportError as exc:
        msg = "tracing requires opentelemetry-sdk: pip install 'browser-relay[otel]'"
        raise ImportError(msg) from exc

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    if exporter == "console":
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter

        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    else:
        provider.add_span_processor(BatchSpanProcessor(_otlp_exporter(otlp_endpoint)))
    trace.set_tracer_provider(provider)


def _otlp_exporter(endpoint: str | None) -> Any:
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    except ImportError as exc:
        msg = "OTLP tracing requires opentelemetry-exporter-otlp: pip install 'browser-relay[otel]'"
        raise ImportError(msg) from exc
    return OTLPSpanExporter(endpoint=endpoint) if endpoint else OTLPSpanExporter()
