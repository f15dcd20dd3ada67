"""Reorder advisor: restock urgency from current stock levels."""

import logging
from collections.abc import Callable, Iterable
from decimal import Decimal

from retail_order_core.data.models import Product, ReorderCandidate, ReorderReport, Urgency, to_money
from retail_order_core.errors import ValidationError
from retail_order_core.observability import trace
from retail_order_core.state.stores import ProductStore, call_store

logger = logging.getLogger(__name__)

ReorderPolicy = Callable[[int, int], int]


def refill_to_double_threshold(threshold: int, current_stock: int) -> int:
    """
    Units to order so stock reaches twice the threshold.

    A rule of thumb for estimating restock cost, not a demand-based order
    quantity. Swap in another policy for real purchasing decisions.
    """
    return max(threshold * 2 - current_stock, 0)


def urgency_for(stock: int, threshold: int, high_max: int = 5) -> Urgency | None:
    """
    Urgency tier for a stock level, or None when stock is above the threshold.

    Checked in order: zero is CRITICAL, up to high_max is HIGH, up to the
    threshold is MEDIUM.
    """
    if stock > threshold:
        return None
    if stock == 0:
        return Urgency.CRITICAL
    if stock <= high_max:
        return Urgency.HIGH
    return Urgency.MEDIUM


class ReorderAdvisor:
    """Classifies products into restock urgency tiers."""

    def __init__(
        self,
        product_store: ProductStore | None = None,
        default_threshold: int = 20,
        high_urgency_max_stock: int = 5,
        policy: ReorderPolicy = refill_to_double_threshold,
        timeout: float = 5.0,
    ):
        self.products = product_store
        self.default_threshold = default_threshold
        self.high_max = high_urgency_max_stock
        self.policy = policy
        self.timeout = timeout

    def classify(
        self,
        products: Iterable[Product],
        threshold: int,
        category: str | None = None,
        include_out_of_stock: bool = True,
    ) -> list[ReorderCandidate]:
        """
        Products at or below threshold with their urgency, lowest stock first.

        Args:
            products: Products to examine
            threshold: Stock level at or below which a product needs reordering
            category: Optional category filter (case-insensitive)
            include_out_of_stock: Keep products with zero stock

        Returns:
            Candidates ordered by stock, then SKU
        """
        if threshold < 0:
            raise ValidationError(f"Threshold must be non-negative, got {threshold}", threshold=threshold)

        candidates = []
        for product in products:
            if category and product.category.lower() != category.lower():
                continue
            if not include_out_of_stock and product.stock_quantity == 0:
                continue
            urgency = urgency_for(product.stock_quantity, threshold, self.high_max)
            if urgency is None:
                continue
            candidates.append(
                ReorderCandidate(
                    sku=product.sku,
                    name=product.name,
                    category=product.category,
                    current_stock=product.stock_quantity,
                    unit_price=product.price,
                    supplier=product.supplier,
                    urgency=urgency,
                )
            )

        candidates.sort(key=lambda c: (c.current_stock, c.sku))
        return candidates

    def estimated_reorder_value(self, candidates: Iterable[ReorderCandidate], threshold: int) -> Decimal:
        """Cost of restocking the candidates under the configured policy."""
        total = sum(
            (Decimal(self.policy(threshold, c.current_stock)) * c.unit_price for c in candidates),
            Decimal("0"),
        )
        return to_money(total)

    def build_report(
        self,
        products: Iterable[Product],
        threshold: int,
        category: str | None = None,
        include_out_of_stock: bool = True,
    ) -> ReorderReport:
        candidates = self.classify(products, threshold, category, include_out_of_stock)
        summary = {tier.value: 0 for tier in Urgency}
        for candidate in candidates:
            summary[candidate.urgency.value] += 1

        return ReorderReport(
            threshold_used=threshold,
            category_filter=category,
            urgency_summary=summary,
            estimated_reorder_value=self.estimated_reorder_value(candidates, threshold),
            products=candidates,
        )

    @trace(name="check_reorder_needed", trace_type="advisor")
    async def check_reorder_needed(
        self,
        threshold: int | None = None,
        category: str | None = None,
        include_out_of_stock: bool = True,
    ) -> ReorderReport:
        """Reorder report over the active products in the product store."""
        if self.products is None:
            raise ValidationError("Reorder advisor has no product store")

        threshold = self.default_threshold if threshold is None else threshold
        products = await call_store(self.products.list_products(category=category), self.timeout, "list_products")
        report = self.build_report(products, threshold, category, include_out_of_stock)
        logger.info(f"Reorder check (threshold={threshold}): {len(report.products)} products need reordering")
        return report
