"""Catalog guard: product deletion rules and stock summaries."""

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Literal

from retail_order_core.data.models import Product, StockSummary, StockSummaryGroup, to_money, utcnow
from retail_order_core.errors import NotFoundError, ProductInUseError, ValidationError
from retail_order_core.state.stores import KeyedLocks, OrderStore, ProductStore, call_store

logger = logging.getLogger(__name__)

GroupBy = Literal["category", "supplier"]


def _health(out_of_stock: int, low_stock: int) -> Literal["CRITICAL", "WARNING", "HEALTHY"]:
    if out_of_stock > 0:
        return "CRITICAL"
    if low_stock > 2:
        return "WARNING"
    return "HEALTHY"


def summarize_group(name: str, products: list[Product], low_stock_ceiling: int) -> StockSummaryGroup:
    stocks = [p.stock_quantity for p in products]
    out_of_stock = sum(1 for s in stocks if s == 0)
    low_stock = sum(1 for s in stocks if 0 < s <= low_stock_ceiling)
    value = sum((p.price * p.stock_quantity for p in products), Decimal("0"))
    return StockSummaryGroup(
        name=name,
        products=len(products),
        units_in_stock=sum(stocks),
        stock_value=to_money(value),
        avg_stock_per_product=round(sum(stocks) / len(stocks)),
        min_stock=min(stocks),
        max_stock=max(stocks),
        out_of_stock_count=out_of_stock,
        low_stock_count=low_stock,
        health=_health(out_of_stock, low_stock),
    )


class Catalog:
    """Product lifecycle checks that depend on order state."""

    def __init__(
        self,
        product_store: ProductStore,
        order_store: OrderStore,
        low_stock_ceiling: int = 20,
        timeout: float = 5.0,
        clock: Callable[[], datetime] = utcnow,
        product_guard: KeyedLocks | None = None,
    ):
        self.products = product_store
        self.orders = order_store
        self.low_stock_ceiling = low_stock_ceiling
        self.timeout = timeout
        self.clock = clock
        # Shared with OrderFactory so deletes wait for in-flight orders
        self.product_guard = product_guard or KeyedLocks()

    async def get_product(self, sku: str) -> Product:
        product = await call_store(self.products.get_product(sku), self.timeout, "get_product")
        if product is None:
            raise NotFoundError("Product not found", product_code=sku)
        return product

    async def delete_product(self, sku: str, hard_delete: bool = False) -> Product:
        """
        Remove a product from the catalog.

        Soft delete marks the product inactive so it can no longer be
        ordered; hard delete removes the record. Both are refused while the
        product is on a pending or processing order.

        Returns:
            The product as it was before deletion

        Raises:
            NotFoundError: Unknown product
            ProductInUseError: Product has open orders
        """
        async with self.product_guard.hold(sku):
            product = await self.get_product(sku)
            open_orders = await call_store(self.orders.count_open_orders(sku), self.timeout, "count_open_orders")
            if open_orders > 0:
                raise ProductInUseError(
                    "Cannot delete product with pending orders",
                    product_code=sku,
                    pending_orders=open_orders,
                    suggestion="Complete or cancel pending orders first",
                )

            if hard_delete:
                await call_store(self.products.hard_delete(sku), self.timeout, "hard_delete")
                logger.warning(f"Hard deleted product: {sku}")
            else:
                await call_store(self.products.soft_delete(sku, at=self.clock()), self.timeout, "soft_delete")
                logger.info(f"Soft deleted product: {sku}")
        return product

    async def stock_summary(self, group_by: GroupBy = "category") -> StockSummary:
        """Stock units, value and health grouped by category or supplier, highest value first."""
        if group_by not in ("category", "supplier"):
            raise ValidationError(f"Invalid group_by: {group_by}", valid_values=["category", "supplier"])

        products = await call_store(self.products.list_products(), self.timeout, "list_products")
        grouped: dict[str, list[Product]] = {}
        for product in products:
            key = getattr(product, group_by) or "unknown"
            grouped.setdefault(key, []).append(product)

        groups = [summarize_group(name, members, self.low_stock_ceiling) for name, members in grouped.items()]
        groups.sort(key=lambda g: (-g.stock_value, g.name))

        logger.info(f"Stock summary by {group_by}: {len(groups)} groups")
        return StockSummary(
            grouped_by=group_by,
            total_products=sum(g.products for g in groups),
            total_units=sum(g.units_in_stock for g in groups),
            total_value=sum((g.stock_value for g in groups), Decimal("0")),
            out_of_stock=sum(g.out_of_stock_count for g in groups),
            low_stock=sum(g.low_stock_count for g in groups),
            groups=groups,
        )
