"""OpenTelemetry tracing setup (OTLP/HTTP export)."""

import logging

from thread_matcher.config import (
    DEPLOYMENT_ENVIRONMENT,
    OTEL_ENABLED,
    OTEL_EXPORTER_ENDPOINT,
    OTEL_SERVICE_NAME,
)

logger = logging.getLogger(__name__)
_initialized = False
_tracer_provider = None

_SERVICE_VERSION = "0.1.0"


def _build_resource():
    """Build Resource with service identity."""
    from opentelemetry.sdk.resources import Resource

    return Resource.create(
        {
            "service.name": OTEL_SERVICE_NAME,
            "service.version": _SERVICE_VERSION,
            "deployment.environment": DEPLOYMENT_ENVIRONMENT,
        }
    )


def _build_pipeline():
    from opentelemetry import trace
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    provider = TracerProvider(resource=_build_resource())
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=OTEL_EXPORTER_ENDPOINT)))
    trace.set_tracer_provider(provider)
    logger.info("OTLP tracing enabled, exporting to %s", OTEL_EXPORTER_ENDPOINT)
    return provider


def init_tracing() -> None:
    """Initialize OTLP tracing (call once at startup). No-op unless OTEL_ENABLED is set.

    Without a configured provider, get_tracer() returns the OpenTelemetry no-op
    tracer, so spans in the discovery path cost nothing in tests.
    """
    global _initialized, _tracer_provider
    if _initialized or not OTEL_ENABLED:
        return

    _tracer_provider = _build_pipeline()
    _initialized = True


def get_tracer():
    """Return the OpenTelemetry tracer (after init_tracing has run)."""
    from opentelemetry import trace

    return trace.get_tracer("thread-matcher", _SERVICE_VERSION)


def get_tracer_provider():
    """Return the global tracer provider (for shutdown)."""
    from opentelemetry import trace

    return _tracer_provider if _tracer_provider is not None else trace.get_tracer_provider()


def shutdown_tracing() -> None:
    """Flush and shutdown the tracer provider so spans are exported before process exit."""
    from opentelemetry.sdk.trace import TracerProvider

    provider = get_tracer_provider()
    if isinstance(provider, TracerProvider):
        provider.force_flush(timeout_millis=5000)
        provider.shutdown()
