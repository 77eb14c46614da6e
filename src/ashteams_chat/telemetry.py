"""Observability setup for the backend.

Controlled by the ``OBSERVABILITY`` setting:

- ``"otel"`` — OpenTelemetry tracing with an OTLP HTTP exporter
- ``"off"``  — no tracing (default)

The OpenTelemetry packages are an optional extra (``pip install .[otel]``)
and are only imported when enabled.
"""

from __future__ import annotations

from fastapi import FastAPI
from loguru import logger

from ashteams_chat import __version__
from ashteams_chat.config import Settings


def is_observability_active(settings: Settings) -> bool:
    return settings.observability.lower() == "otel"


def setup_telemetry(app: FastAPI, settings: Settings) -> None:
    """Initialise tracing and instrument the FastAPI app.

    No-op when ``settings.observability`` is ``"off"``.
    """
    if not is_observability_active(settings):
        logger.info("Observability disabled (OBSERVABILITY={})", settings.observability)
        return

    from opentelemetry import trace
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": __version__,
        }
    )
    provider = TracerProvider(resource=resource)

    otlp_exporter = OTLPSpanExporter(endpoint=f"{settings.otel_exporter_otlp_endpoint}/v1/traces")
    provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    if settings.otel_console_exporter:
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app)

    logger.info(
        "OpenTelemetry enabled | service={} | endpoint={}",
        settings.otel_service_name,
        settings.otel_exporter_otlp_endpoint,
    )
