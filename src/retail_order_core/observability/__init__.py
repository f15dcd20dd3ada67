"""Observability module for LangFuse tracing."""

from retail_order_core.observability.decorators import trace
from retail_order_core.observability.langfuse_client import (
    flush_langfuse,
    get_langfuse_client,
    log_event,
)

__all__ = ["get_langfuse_client", "trace", "log_event", "flush_langfuse"]
