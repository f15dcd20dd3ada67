"""Demand forecaster: sales velocity and projected stockout dates.

The model is linear depletion: average units sold per day over a lookback
window, assumed to continue unchanged. There is no seasonality, trend or
lead-time modelling, so forecasts for products with bursty or growing demand
will be optimistic. Treat the output as advisory.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timedelta

from retail_order_core.data.models import (
    OrderStatus,
    Product,
    ProductSales,
    RiskLevel,
    StockoutForecast,
    StockoutPrediction,
    to_money,
    utcnow,
)
from retail_order_core.errors import NotFoundError, ValidationError
from retail_order_core.observability import trace
from retail_order_core.state.stores import OrderStore, ProductStore, call_store

logger = logging.getLogger(__name__)

# Orders that represent realized demand; pending and cancelled do not count
REALIZED_STATUSES = (OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED)


def risk_level_for(days_until_stockout: int) -> RiskLevel:
    if days_until_stockout <= 7:
        return RiskLevel.CRITICAL
    if days_until_stockout <= 14:
        return RiskLevel.HIGH
    if days_until_stockout <= 30:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def days_until_stockout(stock: int, units_sold: int, lookback_days: int) -> int | None:
    """
    floor(stock / velocity) where velocity = units_sold / lookback_days.

    Computed as stock * lookback_days // units_sold so the result is exact.
    None means the product never runs out (no sales in the window).
    """
    if units_sold <= 0:
        return None
    return (stock * lookback_days) // units_sold


def forecast_products(
    products: Iterable[Product],
    units_sold: Mapping[str, int],
    lookback_days: int,
    max_forecast_days: int,
    now: datetime,
) -> list[StockoutPrediction]:
    """
    Predictions for products running out within max_forecast_days.

    Products with zero stock or no sales in the window are left out.
    Ordered by days until stockout, then SKU.
    """
    predictions = []
    for product in products:
        if product.stock_quantity <= 0:
            continue
        sold = units_sold.get(product.sku, 0)
        days = days_until_stockout(product.stock_quantity, sold, lookback_days)
        if days is None or days > max_forecast_days:
            continue
        predictions.append(
            StockoutPrediction(
                sku=product.sku,
                name=product.name,
                category=product.category,
                current_stock=product.stock_quantity,
                daily_velocity=round(sold / lookback_days, 2),
                days_until_stockout=days,
                estimated_stockout_date=now + timedelta(days=days),
                risk_level=risk_level_for(days),
            )
        )

    predictions.sort(key=lambda p: (p.days_until_stockout, p.sku))
    return predictions


class DemandForecaster:
    """Forecasts stockouts from historical order lines. Read-only."""

    def __init__(
        self,
        product_store: ProductStore,
        order_store: OrderStore,
        default_lookback_days: int = 30,
        default_max_days: int = 60,
        timeout: float = 5.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.products = product_store
        self.orders = order_store
        self.default_lookback_days = default_lookback_days
        self.default_max_days = default_max_days
        self.timeout = timeout
        self.clock = clock

    async def daily_velocity(self, lookback_days: int, category: str | None = None) -> dict[str, float]:
        """Average units sold per day for each product with sales in the window."""
        if lookback_days <= 0:
            raise ValidationError(f"Lookback must be positive, got {lookback_days}", days_lookback=lookback_days)
        sold = await self._units_sold(lookback_days)
        if category:
            products = await call_store(self.products.list_products(category=category), self.timeout, "list_products")
            skus = {p.sku for p in products}
            sold = {sku: qty for sku, qty in sold.items() if sku in skus}
        return {sku: qty / lookback_days for sku, qty in sold.items()}

    async def _units_sold(self, lookback_days: int) -> dict[str, int]:
        since = self.clock() - timedelta(days=lookback_days)
        aggregates = await call_store(
            self.orders.sales_by_product(since=since, statuses=REALIZED_STATUSES),
            self.timeout,
            "sales_by_product",
        )
        return {sku: agg.quantity for sku, agg in aggregates.items()}

    @trace(name="predict_stockouts", trace_type="forecast")
    async def predict_stockouts(
        self,
        lookback_days: int | None = None,
        max_forecast_days: int | None = None,
        category: str | None = None,
    ) -> StockoutForecast:
        """
        Predict which products run out of stock within max_forecast_days.

        Args:
            lookback_days: Number of past days used to compute velocity
            max_forecast_days: Only report products running out within this many days
            category: Optional category filter

        Returns:
            StockoutForecast with predictions sorted by days until stockout
        """
        lookback_days = self.default_lookback_days if lookback_days is None else lookback_days
        max_forecast_days = self.default_max_days if max_forecast_days is None else max_forecast_days
        if lookback_days <= 0:
            raise ValidationError(f"Lookback must be positive, got {lookback_days}", days_lookback=lookback_days)
        if max_forecast_days < 0:
            raise ValidationError(
                f"Forecast horizon must be non-negative, got {max_forecast_days}",
                max_days_until_stockout=max_forecast_days,
            )

        now = self.clock()
        sold = await self._units_sold(lookback_days)
        products = await call_store(self.products.list_products(category=category), self.timeout, "list_products")
        predictions = forecast_products(products, sold, lookback_days, max_forecast_days, now)

        risk_summary = {level.value: 0 for level in RiskLevel}
        for prediction in predictions:
            risk_summary[prediction.risk_level.value] += 1

        logger.info(f"Generated stock predictions (lookback={lookback_days}d): {len(predictions)} at risk")
        return StockoutForecast(
            analysis_period_days=lookback_days,
            max_days_forecast=max_forecast_days,
            category_filter=category,
            risk_summary=risk_summary,
            predictions=predictions,
        )

    async def product_sales(self, sku: str | None = None, limit: int = 10) -> list[ProductSales]:
        """
        Sales totals per product, ranked by revenue.

        Counts every order regardless of status, matching the catalog-wide
        sales report.
        """
        if limit <= 0:
            raise ValidationError(f"Limit must be positive, got {limit}", limit=limit)
        if sku is not None:
            product = await call_store(self.products.get_product(sku), self.timeout, "get_product")
            if product is None:
                raise NotFoundError(f"Product with code \"{sku}\" not found", product_code=sku)

        aggregates = await call_store(self.orders.sales_by_product(), self.timeout, "sales_by_product")
        if sku is not None:
            aggregates = {k: v for k, v in aggregates.items() if k == sku}

        catalog = await call_store(self.products.list_products(include_inactive=True), self.timeout, "list_products")
        names = {p.sku: p.name for p in catalog}
        ranked = sorted(aggregates.items(), key=lambda kv: (-kv[1].revenue, kv[0]))[:limit]
        return [
            ProductSales(
                sku=key,
                name=names.get(key),
                total_quantity_sold=agg.quantity,
                total_revenue=to_money(agg.revenue),
                number_of_orders=agg.orders,
            )
            for key, agg in ranked
        ]
