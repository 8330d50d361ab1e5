"""Filestore observability module.

OpenTelemetry setup for store operation spans and trace-id log correlation.
"""

from filestore.observability.tracing import configure_tracing, get_current_trace_id

__all__ = ["configure_tracing", "get_current_trace_id"]
