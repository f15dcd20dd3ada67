"""Abstract product and order store interfaces."""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Iterable
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TypeVar

from retail_order_core.data.models import Order, OrderStatus, Product
from retail_order_core.errors import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

OPEN_STATUSES = (OrderStatus.PENDING, OrderStatus.PROCESSING)


async def call_store(awaitable: Awaitable[T], timeout: float, operation: str) -> T:
    """
    Await a store call with an upper bound on its duration.

    Args:
        awaitable: Store coroutine
        timeout: Seconds before giving up
        operation: Name used in the error message

    Returns:
        The store call's result

    Raises:
        TransientStoreError: If the call does not complete in time
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"Store call timed out after {timeout}s: {operation}")
        raise TransientStoreError(f"Store timeout during {operation}", operation=operation) from e


class KeyedLocks:
    """
    One asyncio.Lock per key, created on demand.

    A key's lock is dropped as soon as no task holds or waits on it, so the
    map only contains keys currently in use.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    @asynccontextmanager
    async def hold_all(self, keys: Iterable[str]) -> AsyncIterator[None]:
        """Hold the locks for several keys, acquired in sorted order."""
        async with AsyncExitStack() as stack:
            for key in sorted(set(keys)):
                await stack.enter_async_context(self.hold(key))
            yield


@dataclass
class SalesAggregate:
    """Quantity, revenue and order count for one product."""

    quantity: int = 0
    revenue: Decimal = Decimal("0")
    orders: int = 0


class ProductStore(ABC):
    """Abstract base class for product storage.

    Stock mutations must be atomic with respect to the read of the current
    stock: implementations apply them as conditional updates.
    """

    @abstractmethod
    async def get_product(self, sku: str) -> Product | None:
        """Return the product or None if unknown."""

    @abstractmethod
    async def list_products(self, category: str | None = None, include_inactive: bool = False) -> list[Product]:
        """Return products, optionally limited to one category (case-insensitive)."""

    @abstractmethod
    async def save_product(self, product: Product) -> None:
        """Create or replace a catalog record."""

    @abstractmethod
    async def apply_stock_delta(self, sku: str, delta: int, at: datetime, clamp_at_zero: bool = False) -> tuple[int, int]:
        """
        Atomically add delta to a product's stock.

        Args:
            sku: Product code
            delta: Signed change
            at: Timestamp stored as the product's updated_at
            clamp_at_zero: Floor the result at zero instead of failing

        Returns:
            Tuple of (previous_stock, new_stock)

        Raises:
            NotFoundError: If the product does not exist
            InsufficientStockError: If the result would be negative and clamping is off
        """

    @abstractmethod
    async def set_stock(self, sku: str, quantity: int, at: datetime) -> tuple[int, int]:
        """Atomically replace a product's stock. Returns (previous_stock, new_stock)."""

    @abstractmethod
    async def soft_delete(self, sku: str, at: datetime) -> bool:
        """Mark a product inactive. Returns False if unknown."""

    @abstractmethod
    async def hard_delete(self, sku: str) -> bool:
        """Remove a product record. Returns False if unknown."""


class OrderStore(ABC):
    """Abstract base class for order storage."""

    @abstractmethod
    async def get_order(self, order_number: str) -> Order | None:
        """Return the order or None if unknown."""

    @abstractmethod
    async def insert_order(self, order: Order) -> None:
        """Store a new order."""

    @abstractmethod
    async def replace_order_if_status(self, order: Order, expected_status: OrderStatus) -> bool:
        """
        Replace a stored order only if its stored status is still expected_status.

        Returns:
            True if the write happened, False if the status changed meanwhile
        """

    @abstractmethod
    async def list_orders(self, status: OrderStatus | None = None, limit: int = 50) -> list[Order]:
        """Return orders newest first."""

    @abstractmethod
    async def orders_since(self, since: datetime | None, statuses: Iterable[OrderStatus] | None = None) -> list[Order]:
        """Return orders created at or after since, optionally filtered by status."""

    @abstractmethod
    async def next_order_sequence(self, year: int) -> int:
        """Atomically increment and return the order counter for a year."""

    async def sales_by_product(
        self,
        since: datetime | None = None,
        statuses: Iterable[OrderStatus] | None = None,
    ) -> dict[str, SalesAggregate]:
        """Group line items by product over the matching orders."""
        totals: dict[str, SalesAggregate] = {}
        for order in await self.orders_since(since, statuses):
            for item in order.items:
                agg = totals.setdefault(item.sku, SalesAggregate())
                agg.quantity += item.quantity
                agg.revenue += item.unit_price * item.quantity
                agg.orders += 1
        return totals

    async def count_open_orders(self, sku: str) -> int:
        """Count pending or processing orders that reference a product."""
        open_orders = await self.orders_since(None, OPEN_STATUSES)
        return sum(1 for order in open_orders if order.quantity_of(sku) > 0)
