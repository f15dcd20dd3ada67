"""LangFuse client wrapper for observability."""

import logging
from typing import Any

logger = logging.getLogger(__name__)

# Global LangFuse client instance
_langfuse_client = None


def get_langfuse_client():
    """
    Get singleton LangFuse client instance.

    Returns:
        Langfuse client instance or None if tracing is disabled or not configured
    """
    global _langfuse_client

    if _langfuse_client is not None:
        return _langfuse_client

    from retail_order_core.config.settings import get_settings

    settings = get_settings()
    if not settings.langfuse_enabled:
        return None

    try:
        from langfuse import Langfuse

        _langfuse_client = Langfuse(
            public_key=settings.langfuse_public_key,
            secret_key=settings.langfuse_secret_key,
            host=settings.langfuse_host,
        )
        logger.info(f"Initialized LangFuse client with host: {settings.langfuse_host}")
        return _langfuse_client

    except Exception as e:
        logger.error(f"Error initializing LangFuse client: {e}")
        return None


def log_event(
    name: str,
    level: str = "DEFAULT",
    input_data: Any = None,
    output_data: Any = None,
    metadata: dict | None = None,
):
    """
    Record an audit event in LangFuse.

    Args:
        name: Event name
        level: LangFuse level (DEBUG, DEFAULT, WARNING, ERROR)
        input_data: Input data
        output_data: Output data
        metadata: Additional metadata

    Example:
        log_event(
            name="stock_updated",
            input_data={"product_code": "INT-LAV-001", "adjustment_type": "add"},
            output_data={"previous_stock": 4, "new_stock": 24},
        )
    """
    client = get_langfuse_client()
    if not client:
        return

    try:
        client.create_event(
            name=name,
            level=level,
            input=input_data,
            output=output_data,
            metadata=metadata,
        )
    except Exception as e:
        logger.error(f"Error logging event: {e}")


def flush_langfuse():
    """Flush LangFuse client to ensure all traces are sent."""
    client = get_langfuse_client()
    if client:
        try:
            client.flush()
            logger.debug("Flushed LangFuse client")
        except Exception as e:
            logger.error(f"Error flushing LangFuse client: {e}")
