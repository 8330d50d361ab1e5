"""OpenTelemetry tracing configuration for filestore.

Tracing is off by default. When enabled, every backend operation emits a
span (see filestore.tracing) and failure log lines carry the trace id.

Environment Variables:
    FILESTORE_OTEL_ENABLED: Set to "1" to enable tracing (default: disabled)
    FILESTORE_REQUIRE_OTEL: Set to "1" to raise if tracing cannot initialize
    FILESTORE_OTEL_SERVICE_NAME: Service name for spans (default: "filestore")
    FILESTORE_OTEL_EXPORTER: "otlp" or "console" (default: "otlp")
    FILESTORE_OTEL_EXPORTER_OTLP_ENDPOINT: OTLP/gRPC endpoint URL (optional)
    FILESTORE_OTEL_TEST_CAPTURE: Set to "1" to capture spans in memory
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any

from filestore.errors import ConfigurationError

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import ReadableSpan
    from opentelemetry.sdk.trace.export import SpanExporter

logger = logging.getLogger(__name__)

OTEL_ENABLED_ENV = "FILESTORE_OTEL_ENABLED"
REQUIRE_OTEL_ENV = "FILESTORE_REQUIRE_OTEL"
OTEL_SERVICE_NAME_ENV = "FILESTORE_OTEL_SERVICE_NAME"
OTEL_EXPORTER_ENV = "FILESTORE_OTEL_EXPORTER"
OTEL_ENDPOINT_ENV = "FILESTORE_OTEL_EXPORTER_OTLP_ENDPOINT"
OTEL_TEST_CAPTURE_ENV = "FILESTORE_OTEL_TEST_CAPTURE"

_provider_installed = False
_test_exporter: Any = None  # InMemorySpanExporter when test capture is on


def _env_flag(key: str) -> bool:
    return os.environ.get(key, "").strip().lower() in ("1", "true", "yes")


def is_tracing_enabled() -> bool:
    """Check if OpenTelemetry tracing is enabled."""
    return _env_flag(OTEL_ENABLED_ENV)


def _build_exporter(kind: str) -> SpanExporter:
    if kind == "console":
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter

        return ConsoleSpanExporter()

    # Needs the otlp extra.
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

    endpoint = os.environ.get(OTEL_ENDPOINT_ENV, "").strip()
    return OTLPSpanExporter(endpoint=endpoint) if endpoint else OTLPSpanExporter()


def configure_tracing() -> bool:
    """Install a tracer provider for filestore spans.

    Idempotent. The global provider can only be set once per process, so a
    second call with tracing enabled reuses the first provider.

    Returns:
        True if tracing is enabled and configured, False otherwise.

    Raises:
        ConfigurationError: If FILESTORE_REQUIRE_OTEL=1 and setup fails.
    """
    global _provider_installed, _test_exporter

    if not is_tracing_enabled():
        logger.debug("OpenTelemetry tracing disabled (%s not set)", OTEL_ENABLED_ENV)
        return False
    if _provider_installed:
        return True

    test_capture = _env_flag(OTEL_TEST_CAPTURE_ENV)
    exporter_kind = os.environ.get(OTEL_EXPORTER_ENV, "otlp").strip() or "otlp"
    service_name = os.environ.get(OTEL_SERVICE_NAME_ENV, "").strip() or "filestore"

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor

        provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
        if test_capture:
            from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
                InMemorySpanExporter,
            )

            _test_exporter = InMemorySpanExporter()
            provider.add_span_processor(SimpleSpanProcessor(_test_exporter))
        elif exporter_kind == "console":
            provider.add_span_processor(SimpleSpanProcessor(_build_exporter("console")))
        else:
            provider.add_span_processor(BatchSpanProcessor(_build_exporter(exporter_kind)))

        trace.set_tracer_provider(provider)
    except Exception as e:
        logger.error("Failed to configure OpenTelemetry tracing: %s", e)
        if _env_flag(REQUIRE_OTEL_ENV):
            raise ConfigurationError(f"OpenTelemetry tracing required but unavailable: {e}") from e
        return False

    _provider_installed = True
    logger.info(
        "OpenTelemetry tracing configured: service=%s, exporter=%s",
        service_name,
        "in-memory" if test_capture else exporter_kind,
    )
    return True


def get_current_trace_id() -> str | None:
    """Hex trace id of the active span, or None outside a recorded span."""
    from opentelemetry import trace

    ctx = trace.get_current_span().get_span_context()
    if not ctx.is_valid:
        return None
    return format(ctx.trace_id, "032x")


def get_test_spans() -> list[ReadableSpan]:
    """Spans captured while FILESTORE_OTEL_TEST_CAPTURE=1 (empty otherwise)."""
    if _test_exporter is None:
        return []
    return list(_test_exporter.get_finished_spans())


def clear_test_spans() -> None:
    if _test_exporter is not None:
        _test_exporter.clear()


def reset_tracing() -> None:
    """Drop captured spans between tests.

    The provider itself stays installed because OpenTelemetry refuses to
    replace it.
    """
    clear_test_spans()
