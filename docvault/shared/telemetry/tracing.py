"""Utility functions and decorators for distributed tracing"""
import asyncio
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

logger = logging.getLogger(__name__)

# Keyword arguments never copied onto spans
_SENSITIVE_ARGS = frozenset({"token", "password", "secret", "data"})


def _record_arguments(span: trace.Span, kwargs: dict[str, Any]) -> None:
    for key, value in kwargs.items():
        if key.startswith("_") or key in _SENSITIVE_ARGS:
            continue
        span.set_attribute(f"arg.{key}", str(value))


def _record_failure(span: trace.Span, exc: Exception) -> None:
    error_code = getattr(exc, "error_code", None)
    if error_code:
        span.set_attribute("docvault.error_code", error_code)
    span.set_status(Status(StatusCode.ERROR, str(exc)))
    span.record_exception(exc)


def traced(operation_name: str | None = None, attributes: dict[str, Any] | None = None):
    """
    Decorator to create a span for a function

    Usage:
        @traced("ledger.commit_version")
        async def commit_version(self, version_id: str, ...):
            ...

    Args:
        operation_name: Name of the operation (defaults to module.function)
        attributes: Additional attributes to add to the span
    """

    def decorator(func: Callable) -> Callable:
        span_name = operation_name or f"{func.__module__}.{func.__name__}"

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            tracer = trace.get_tracer(__name__)
            with tracer.start_as_current_span(span_name) as span:
                for key, value in (attributes or {}).items():
                    span.set_attribute(key, value)
                _record_arguments(span, kwargs)

                try:
                    result = await func(*args, **kwargs)
                    span.set_status(Status(StatusCode.OK))
                    return result
                except Exception as e:
                    _record_failure(span, e)
                    raise

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            tracer = trace.get_tracer(__name__)
            with tracer.start_as_current_span(span_name) as span:
                for key, value in (attributes or {}).items():
                    span.set_attribute(key, value)
                _record_arguments(span, kwargs)

                try:
                    result = func(*args, **kwargs)
                    span.set_status(Status(StatusCode.OK))
                    return result
                except Exception as e:
                    _record_failure(span, e)
                    raise

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def add_span_attributes(**attributes):
    """
    Add attributes to the current span

    Usage:
        add_span_attributes(document_id="123", version_number=2)
    """
    span = trace.get_current_span()
    if span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, value)
