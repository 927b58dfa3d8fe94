"""OpenTelemetry tracing for object storage operations.

Span attributes never include filesystem paths or raw keys; keys are
exported as a SHA-256 hash so spans can be correlated without exposing
client filenames.
"""

from __future__ import annotations

import functools
import hashlib
import logging
from collections.abc import Callable
from typing import Any, TypeVar, cast

from opentelemetry import trace

from filehub.observability.tracing import is_tracing_enabled
from filehub.storage.models import StoredObjectMetadata

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

TRACER_NAME = "filehub.object_store"


def traced_storage_operation(operation: str) -> Callable[[F], F]:
    """Decorator to trace storage operations with OpenTelemetry.

    Args:
        operation: Operation name (e.g., "put", "head", "open_range").

    Returns:
        Decorated method that emits a span when tracing is enabled.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            if not is_tracing_enabled():
                return func(self, *args, **kwargs)

            tracer = trace.get_tracer(TRACER_NAME)
            with tracer.start_as_current_span(f"{TRACER_NAME}.{operation}") as span:
                span.set_attribute("storage.backend", getattr(self, "backend_name", "unknown"))
                if args and isinstance(args[0], str):
                    key_sha256 = hashlib.sha256(args[0].encode("utf-8")).hexdigest()
                    span.set_attribute("filehub.object_key_sha256", key_sha256)

                try:
                    result = func(self, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("error", True)
                    span.set_attribute("error.type", type(e).__name__)
                    raise

                _add_result_attributes(span, result, operation)
                return result

        return cast(F, wrapper)

    return decorator


def _add_result_attributes(span: Any, result: Any, operation: str) -> None:
    """Add size/digest attributes for metadata results."""
    if isinstance(result, StoredObjectMetadata):
        span.set_attribute("filehub.object_size_bytes", result.size_bytes)
        span.set_attribute("filehub.object_content_type", result.content_type)
        if result.sha256:
            span.set_attribute("filehub.object_sha256", result.sha256)
    elif operation == "list_objects" and isinstance(result, list):
        span.set_attribute("filehub.object_count", len(result))
