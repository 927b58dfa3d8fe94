"""OpenTelemetry tracing configuration.

Environment Variables:
    FILEHUB_OTEL_ENABLED: Set to "1" to enable tracing (default: disabled)
    FILEHUB_OTEL_SERVICE_NAME: Service name for spans (default: "filehub")
    FILEHUB_OTEL_TEST_CAPTURE: Set to "1" to capture spans in memory (tests)

Spans are exported to the console unless test capture is enabled.
"""

from __future__ import annotations

import logging
import os

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

logger = logging.getLogger(__name__)

OTEL_ENABLED_ENV = "FILEHUB_OTEL_ENABLED"
OTEL_SERVICE_NAME_ENV = "FILEHUB_OTEL_SERVICE_NAME"
OTEL_TEST_CAPTURE_ENV = "FILEHUB_OTEL_TEST_CAPTURE"

_tracer_provider: TracerProvider | None = None
_test_exporter: InMemorySpanExporter | None = None


def _get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    val = os.environ.get(key, "").strip().lower()
    if val in ("1", "true", "yes"):
        return True
    if val in ("0", "false", "no"):
        return False
    return default


def is_tracing_enabled() -> bool:
    """Check if OpenTelemetry tracing is enabled."""
    return _get_env_bool(OTEL_ENABLED_ENV, False)


def configure_tracing() -> bool:
    """Install a tracer provider when tracing is enabled.

    Idempotent. The global provider can only be set once per process, so
    later calls reuse the first provider.

    Returns:
        True if tracing is enabled and configured, False otherwise.
    """
    global _tracer_provider, _test_exporter

    if not is_tracing_enabled():
        logger.debug("OpenTelemetry tracing disabled (%s not set)", OTEL_ENABLED_ENV)
        return False

    if _tracer_provider is not None:
        return True

    service_name = os.environ.get(OTEL_SERVICE_NAME_ENV, "filehub").strip() or "filehub"
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))

    if _get_env_bool(OTEL_TEST_CAPTURE_ENV, False):
        _test_exporter = InMemorySpanExporter()
        provider.add_span_processor(SimpleSpanProcessor(_test_exporter))
        exporter_name = "in-memory"
    else:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
        exporter_name = "console"

    trace.set_tracer_provider(provider)
    _tracer_provider = provider

    logger.info(
        "OpenTelemetry tracing configured: service=%s, exporter=%s",
        service_name,
        exporter_name,
    )
    return True


def get_test_spans() -> list[ReadableSpan]:
    """Get captured spans from the in-memory exporter (for testing)."""
    if _test_exporter is not None:
        return list(_test_exporter.get_finished_spans())
    return []


def clear_test_spans() -> None:
    """Clear captured spans from the in-memory exporter (for testing)."""
    if _test_exporter is not None:
        _test_exporter.clear()
