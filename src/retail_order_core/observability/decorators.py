"""Tracing decorators for automatic observability."""

import functools
import inspect
import logging
import time
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


def _start_span(name: str, trace_type: str, func: Callable):
    """Open a LangFuse span, or return None when tracing is unavailable."""
    try:
        from retail_order_core.observability.langfuse_client import get_langfuse_client

        client = get_langfuse_client()
    except Exception as e:
        logger.debug(f"LangFuse not available: {e}")
        return None

    if not client:
        return None

    try:
        return client.start_span(
            name=name,
            metadata={
                "type": trace_type,
                "function": func.__name__,
                "module": func.__module__,
            },
        )
    except Exception as e:
        logger.debug(f"Error creating span: {e}")
        return None


def _end_span(span, started: float, result: Any, error: BaseException | None) -> None:
    if span is None:
        return
    try:
        span.update(
            output={"result": str(result)[:1000] if result is not None else None},
            metadata={
                "duration_seconds": time.time() - started,
                "error": str(error) if error else None,
                "error_type": type(error).__name__ if error else None,
            },
        )
        span.end()
    except Exception as e:
        logger.debug(f"Error updating/ending span: {e}")


def trace(name: str | None = None, trace_type: str = "function"):
    """
    Decorator to trace function execution with LangFuse.

    Errors are recorded on the span and re-raised unchanged.

    Args:
        name: Optional custom name for the trace (defaults to function name)
        trace_type: Type of trace (ledger, order, forecast, tool)

    Usage:
        @trace(name="ledger_reserve", trace_type="ledger")
        async def reserve(self, sku, quantity):
            ...
    """

    def decorator(func: Callable) -> Callable:
        trace_name = name or func.__name__

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            started = time.time()
            span = _start_span(trace_name, trace_type, func)
            result = None
            error = None
            try:
                result = await func(*args, **kwargs)
                return result
            except Exception as e:
                error = e
                raise
            finally:
                _end_span(span, started, result, error)

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            started = time.time()
            span = _start_span(trace_name, trace_type, func)
            result = None
            error = None
            try:
                result = func(*args, **kwargs)
                return result
            except Exception as e:
                error = e
                raise
            finally:
                _end_span(span, started, result, error)

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
