"""In-memory product and order stores."""

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime

from retail_order_core.data.models import Order, OrderStatus, Product
from retail_order_core.errors import InsufficientStockError, NotFoundError, ValidationError
from retail_order_core.state.stores import KeyedLocks, OrderStore, ProductStore

logger = logging.getLogger(__name__)


class MemoryProductStore(ProductStore):
    """
    In-memory product storage.

    Stock mutations are serialized per SKU with an asyncio.Lock, so two
    concurrent reservations against one product never both pass the
    non-negative check. State is lost on restart.
    """

    def __init__(self, products: Iterable[Product] | None = None):
        self._products: dict[str, Product] = {}
        self._locks = KeyedLocks()
        for product in products or []:
            self._products[product.sku] = product.model_copy(deep=True)
        logger.info(f"Initialized in-memory product store with {len(self._products)} products")

    async def get_product(self, sku: str) -> Product | None:
        product = self._products.get(sku)
        return product.model_copy(deep=True) if product else None

    async def list_products(self, category: str | None = None, include_inactive: bool = False) -> list[Product]:
        products = list(self._products.values())
        if category:
            products = [p for p in products if p.category.lower() == category.lower()]
        if not include_inactive:
            products = [p for p in products if p.is_active]
        return [p.model_copy(deep=True) for p in products]

    async def save_product(self, product: Product) -> None:
        async with self._locks.hold(product.sku):
            self._products[product.sku] = product.model_copy(deep=True)
        logger.debug(f"Saved product: {product.sku}")

    async def apply_stock_delta(self, sku: str, delta: int, at: datetime, clamp_at_zero: bool = False) -> tuple[int, int]:
        async with self._locks.hold(sku):
            product = self._products.get(sku)
            if product is None:
                raise NotFoundError(f"Product not found: {sku}", product_code=sku)

            previous = product.stock_quantity
            new = previous + delta
            if new < 0:
                if not clamp_at_zero:
                    raise InsufficientStockError(sku, requested=-delta, available=previous)
                new = 0

            self._products[sku] = product.model_copy(update={"stock_quantity": new, "updated_at": at})
            return previous, new

    async def set_stock(self, sku: str, quantity: int, at: datetime) -> tuple[int, int]:
        if quantity < 0:
            raise ValidationError("Stock quantity cannot be negative", product_code=sku, quantity=quantity)
        async with self._locks.hold(sku):
            product = self._products.get(sku)
            if product is None:
                raise NotFoundError(f"Product not found: {sku}", product_code=sku)
            previous = product.stock_quantity
            self._products[sku] = product.model_copy(update={"stock_quantity": quantity, "updated_at": at})
            return previous, quantity

    async def soft_delete(self, sku: str, at: datetime) -> bool:
        async with self._locks.hold(sku):
            product = self._products.get(sku)
            if product is None:
                return False
            self._products[sku] = product.model_copy(update={"is_active": False, "deleted_at": at, "updated_at": at})
            return True

    async def hard_delete(self, sku: str) -> bool:
        async with self._locks.hold(sku):
            return self._products.pop(sku, None) is not None


class MemoryOrderStore(OrderStore):
    """In-memory order storage. Orders are kept in insertion order."""

    def __init__(self, orders: Iterable[Order] | None = None):
        self._orders: dict[str, Order] = {}
        self._sequences: dict[int, int] = {}
        self._lock = asyncio.Lock()
        for order in orders or []:
            self._orders[order.order_number] = order.model_copy(deep=True)
            # Seeded ORD-<year>-<seq> numbers advance the counters
            parts = order.order_number.rsplit("-", 2)
            if len(parts) == 3 and parts[1].isdigit() and parts[2].isdigit():
                year, seq = int(parts[1]), int(parts[2])
                self._sequences[year] = max(self._sequences.get(year, 0), seq)
        logger.info(f"Initialized in-memory order store with {len(self._orders)} orders")

    async def get_order(self, order_number: str) -> Order | None:
        order = self._orders.get(order_number)
        return order.model_copy(deep=True) if order else None

    async def insert_order(self, order: Order) -> None:
        async with self._lock:
            if order.order_number in self._orders:
                raise ValidationError(f"Duplicate order number: {order.order_number}")
            self._orders[order.order_number] = order.model_copy(deep=True)
        logger.debug(f"Inserted order: {order.order_number}")

    async def replace_order_if_status(self, order: Order, expected_status: OrderStatus) -> bool:
        async with self._lock:
            stored = self._orders.get(order.order_number)
            if stored is None or stored.status != expected_status:
                return False
            self._orders[order.order_number] = order.model_copy(deep=True)
            return True

    async def list_orders(self, status: OrderStatus | None = None, limit: int = 50) -> list[Order]:
        orders = [o for o in self._orders.values() if status is None or o.status == status]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return [o.model_copy(deep=True) for o in orders[:limit]]

    async def orders_since(self, since: datetime | None, statuses: Iterable[OrderStatus] | None = None) -> list[Order]:
        wanted = set(statuses) if statuses is not None else None
        return [
            o.model_copy(deep=True)
            for o in self._orders.values()
            if (since is None or o.created_at >= since) and (wanted is None or o.status in wanted)
        ]

    async def next_order_sequence(self, year: int) -> int:
        async with self._lock:
            self._sequences[year] = self._sequences.get(year, 0) + 1
            return self._sequences[year]

    def get_order_count(self) -> int:
        return len(self._orders)
