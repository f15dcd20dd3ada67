"""Store backend selection and logging setup."""

import logging
from typing import TYPE_CHECKING

from .settings import Settings, get_settings

if TYPE_CHECKING:
    from retail_order_core.state.stores import OrderStore, ProductStore

logger = logging.getLogger(__name__)


def get_stores(settings: Settings | None = None) -> tuple["ProductStore", "OrderStore"]:
    """
    Factory function to build the product and order stores for the configured backend.

    Args:
        settings: Optional Settings instance. If None, will use get_settings().

    Returns:
        Tuple of (product_store, order_store)

    Raises:
        ValueError: If the store backend is unknown
    """
    if settings is None:
        settings = get_settings()

    if settings.store_backend == "memory":
        logger.info("Using in-memory product and order stores")
        from retail_order_core.state.memory_store import MemoryOrderStore, MemoryProductStore

        return MemoryProductStore(), MemoryOrderStore()

    if settings.store_backend == "redis":
        logger.info(f"Using Redis product and order stores at {settings.redis_url}")
        import redis.asyncio as redis

        from retail_order_core.state.persistent_store import RedisOrderStore, RedisProductStore

        client = redis.from_url(settings.redis_url, decode_responses=True)
        return (
            RedisProductStore(client, prefix=settings.redis_key_prefix),
            RedisOrderStore(client, prefix=settings.redis_key_prefix),
        )

    raise ValueError(f"Invalid store backend: {settings.store_backend}")


def configure_logging(settings: Settings | None = None) -> None:
    """
    Configure root logging from settings.

    Args:
        settings: Optional Settings instance. If None, will use get_settings().
    """
    if settings is None:
        settings = get_settings()

    if settings.log_level == "DEBUG":
        fmt = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
    else:
        fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(level=getattr(logging, settings.log_level), format=fmt)
    logger.info(f"Logging configured at level {settings.log_level} ({settings.store_backend} stores)")
