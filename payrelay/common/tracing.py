"""OpenTelemetry wiring: provider setup, app instrumentation, client spans."""

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

from payrelay.common.config import Settings


# Without a registered provider this hands out no-op spans.
tracer = trace.get_tracer("payrelay")


def setup_tracing(app: FastAPI, settings: Settings) -> bool:
    """Register an OTLP exporter and instrument `app` when tracing is enabled."""

    if not settings.tracing_enabled:
        return False
    resource = Resource.create({"service.name": settings.service_name})
    provider = TracerProvider(resource=resource)
    exporter = OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app)
    return True
