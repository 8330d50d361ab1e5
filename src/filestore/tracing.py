"""OpenTelemetry span decorator for store operations.

Security:
    - Never export raw object paths or keys in span attributes; a SHA256 of
      the primary path is exported for correlation instead
    - No credentials or signing material in any span attribute
"""

from __future__ import annotations

import functools
import hashlib
import logging
from collections.abc import Callable
from typing import Any, TypeVar, cast

from filestore.models import FileOperationOutput, PathConfig, UploadResult
from filestore.observability.tracing import get_current_trace_id, is_tracing_enabled

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_PATH_ATTRIBUTES = ("path", "dest", "src", "object_path")


def primary_path(arg: Any) -> str | None:
    """Extract the path an operation input is mostly about."""
    if isinstance(arg, str):
        return arg or None
    if isinstance(arg, PathConfig):
        paths = arg.all_paths()
        return paths[0] if paths else None
    for name in _PATH_ATTRIBUTES:
        value = getattr(arg, name, None)
        if value is not None:
            return primary_path(value)
    return None


def traced_operation(operation: str) -> Callable[[F], F]:
    """Decorator to trace a backend operation with OpenTelemetry.

    Args:
        operation: Operation name (e.g., "get_dir", "put_object").

    Returns:
        Decorated method that emits a "filestore.<operation>" span when
        tracing is enabled.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            if not is_tracing_enabled():
                return func(self, *args, **kwargs)

            try:
                from opentelemetry import trace
            except ImportError:
                return func(self, *args, **kwargs)

            tracer = trace.get_tracer("filestore")
            with tracer.start_as_current_span(f"filestore.{operation}") as span:
                span.set_attribute("storage.backend", getattr(self, "backend_name", "unknown"))
                path = primary_path(args[0]) if args else None
                if path:
                    path_sha256 = hashlib.sha256(path.encode("utf-8")).hexdigest()
                    span.set_attribute("filestore.path_sha256", path_sha256)

                try:
                    result = func(self, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("error", True)
                    span.set_attribute("error.type", type(e).__name__)
                    logger.info(
                        "filestore.%s failed: %s trace_id=%s",
                        operation,
                        type(e).__name__,
                        get_current_trace_id(),
                    )
                    raise

                if result is not None:
                    _add_result_attributes(span, result, operation)
                return result

        return cast(F, wrapper)

    return decorator


def _add_result_attributes(span: Any, result: Any, operation: str) -> None:
    """Add safe result attributes (counts and sizes only) to a span."""
    try:
        if isinstance(result, FileOperationOutput):
            span.set_attribute("filestore.has_etag", bool(result.etag))
        elif isinstance(result, UploadResult):
            span.set_attribute("filestore.write_size", result.write_size)
        elif isinstance(result, list):
            name = "filestore.error_count" if operation == "delete_objects" else "filestore.entry_count"
            span.set_attribute(name, len(result))
    except Exception as e:
        logger.debug("Failed to add result attributes to span: %s", e)
