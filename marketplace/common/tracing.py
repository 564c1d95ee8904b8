"""OpenTelemetry wiring for marketplace services."""

import logging

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (  # type: ignore[attr-defined]
    OTLPSpanExporter as OTLPGrpcExporter,
)
from opentelemetry.exporter.otlp.proto.http.trace_exporter import (  # type: ignore[attr-defined]
    OTLPSpanExporter as OTLPHttpExporter,
)
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from opentelemetry.trace import TracerProvider as APITracerProvider

from .config import ServiceSettings

_LOGGER = logging.getLogger(__name__)
_INSTRUMENTED_APPS: set[int] = set()
_HTTPX_INSTRUMENTED = False


def _build_exporter(settings: ServiceSettings) -> SpanExporter | None:
    endpoint = settings.tracing_endpoint
    if endpoint is None:
        return None
    if settings.tracing_protocol == "grpc":
        return OTLPGrpcExporter(endpoint=endpoint, insecure=settings.tracing_insecure)
    return OTLPHttpExporter(endpoint=endpoint)


def _tracer_provider(settings: ServiceSettings) -> APITracerProvider:
    """Return the SDK provider, installing one on first use."""

    existing = trace.get_tracer_provider()
    if isinstance(existing, TracerProvider):
        return existing

    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": settings.app_name,
                "deployment.environment": settings.environment,
            }
        ),
        sampler=TraceIdRatioBased(settings.tracing_sample_rate),
    )
    exporter = _build_exporter(settings)
    if exporter is None:
        _LOGGER.warning(
            "Tracing enabled for %s without an OTLP endpoint; spans stay in-process.",
            settings.app_name,
        )
    else:
        provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    # set_tracer_provider is first-writer-wins; read back the effective provider.
    return trace.get_tracer_provider()


def configure_tracing(app: FastAPI, settings: ServiceSettings) -> None:
    """Instrument the app (and outgoing httpx calls) once tracing is enabled."""

    global _HTTPX_INSTRUMENTED
    if not settings.enable_tracing:
        return

    provider = _tracer_provider(settings)
    if id(app) not in _INSTRUMENTED_APPS:
        FastAPIInstrumentor().instrument_app(app, tracer_provider=provider)
        _INSTRUMENTED_APPS.add(id(app))
    if not _HTTPX_INSTRUMENTED:
        HTTPXClientInstrumentor().instrument(tracer_provider=provider)
        _HTTPX_INSTRUMENTED = True
