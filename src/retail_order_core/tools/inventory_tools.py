"""Inventory management tools implementation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from retail_order_core.data.models import ForecastQuery, ReorderQuery, StockUpdateRequest
from retail_order_core.observability import trace
from retail_order_core.tools.boundary import error_results, to_jsonable, validate_request

if TYPE_CHECKING:
    from retail_order_core.core.engine import InventoryCore

logger = logging.getLogger(__name__)


@trace(name="tool_update_stock", trace_type="tool")
@error_results
async def update_stock_impl(
    core: InventoryCore,
    product_code: str,
    quantity: int,
    adjustment_type: str = "set",
    reason: str | None = None,
) -> dict[str, Any]:
    """
    Implementation of update_stock tool.

    Args:
        core: Inventory core
        product_code: Product to update
        quantity: New absolute quantity or adjustment amount
        adjustment_type: set, add or subtract (subtract stops at zero)
        reason: Reason for the adjustment (audit trail)

    Returns:
        Dictionary with previous and new stock
    """
    request = validate_request(
        StockUpdateRequest,
        product_code=product_code,
        quantity=quantity,
        adjustment_type=adjustment_type,
        reason=reason,
    )
    product = await core.catalog.get_product(request.product_code)
    change = await core.ledger.update_stock(
        request.product_code, request.quantity, request.adjustment_type, request.reason
    )

    return to_jsonable(
        {
            "success": True,
            "product_code": change.sku,
            "product_name": product.name,
            "previous_stock": change.previous_stock,
            "new_stock": change.new_stock,
            "adjustment_type": change.adjustment_type,
            "change": change.change,
            "reason": change.reason or "Not specified",
            "updated_at": change.updated_at,
        }
    )


@trace(name="tool_check_reorder_needed", trace_type="tool")
@error_results
async def check_reorder_needed_impl(
    core: InventoryCore,
    threshold: int | None = None,
    category: str | None = None,
    include_out_of_stock: bool = True,
) -> dict[str, Any]:
    """
    Implementation of check_reorder_needed tool.

    The estimated reorder value assumes each product is refilled to twice
    the threshold; it is a budgeting hint, not a purchase plan.
    """
    query = validate_request(
        ReorderQuery, threshold=threshold, category=category, include_out_of_stock=include_out_of_stock
    )
    report = await core.advisor.check_reorder_needed(query.threshold, query.category, query.include_out_of_stock)

    return to_jsonable(
        {
            "success": True,
            "threshold_used": report.threshold_used,
            "category_filter": report.category_filter or "all",
            "summary": {
                "total_low_stock": len(report.products),
                **report.urgency_summary,
                "estimated_reorder_value": report.estimated_reorder_value,
            },
            "products": [
                {
                    "code": c.sku,
                    "name": c.name,
                    "category": c.category,
                    "current_stock": c.current_stock,
                    "urgency": c.urgency,
                    "unit_price": c.unit_price,
                    "supplier": c.supplier,
                }
                for c in report.products
            ],
        }
    )


@trace(name="tool_get_stock_summary", trace_type="tool")
@error_results
async def get_stock_summary_impl(core: InventoryCore, group_by: str = "category") -> dict[str, Any]:
    """Stock units and value grouped by category or supplier."""
    summary = await core.catalog.stock_summary(group_by or "category")
    return to_jsonable({"success": True, **summary.model_dump()})


@trace(name="tool_delete_product", trace_type="tool")
@error_results
async def delete_product_impl(core: InventoryCore, product_code: str, hard_delete: bool = False) -> dict[str, Any]:
    """Soft (default) or hard delete a product with no open orders."""
    product = await core.catalog.delete_product(product_code, hard_delete=hard_delete)
    return {
        "success": True,
        "product_code": product.sku,
        "product_name": product.name,
        "delete_type": "permanent" if hard_delete else "soft",
    }


@trace(name="tool_predict_stock_out", trace_type="tool")
@error_results
async def predict_stock_out_impl(
    core: InventoryCore,
    days_lookback: int | None = None,
    max_days_until_stockout: int | None = None,
    category: str | None = None,
) -> dict[str, Any]:
    """
    Implementation of predict_stock_out tool.

    Velocity is the average daily quantity sold in processing, shipped or
    delivered orders over the lookback window, projected linearly.
    """
    query = validate_request(
        ForecastQuery,
        days_lookback=days_lookback,
        max_days_until_stockout=max_days_until_stockout,
        category=category,
    )
    forecast = await core.forecaster.predict_stockouts(
        query.days_lookback, query.max_days_until_stockout, query.category
    )
    payload = forecast.model_dump()
    payload["category_filter"] = forecast.category_filter or "all"
    return to_jsonable({"success": True, **payload})


@trace(name="tool_get_product_sales", trace_type="tool")
@error_results
async def get_product_sales_impl(
    core: InventoryCore,
    product_code: str | None = None,
    limit: int = 10,
) -> dict[str, Any]:
    """Sales totals per product ranked by revenue."""
    sales = await core.forecaster.product_sales(product_code, limit or 10)
    return to_jsonable(
        {
            "success": True,
            "total_products": len(sales),
            "sales_data": [
                {
                    "product_code": s.sku,
                    "product_name": s.name,
                    "total_quantity_sold": s.total_quantity_sold,
                    "total_revenue": s.total_revenue,
                    "number_of_orders": s.number_of_orders,
                    "average_quantity_per_order": s.average_quantity_per_order,
                }
                for s in sales
            ],
        }
    )
