"""Product and order storage."""

from retail_order_core.state.memory_store import MemoryOrderStore, MemoryProductStore
from retail_order_core.state.persistent_store import RedisOrderStore, RedisProductStore
from retail_order_core.state.stores import KeyedLocks, OrderStore, ProductStore, SalesAggregate, call_store

__all__ = [
    "ProductStore",
    "OrderStore",
    "SalesAggregate",
    "MemoryProductStore",
    "MemoryOrderStore",
    "RedisProductStore",
    "RedisOrderStore",
    "KeyedLocks",
    "call_store",
]
