"""Order tools implementation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from retail_order_core.data.models import Order, OrderStatus, StatusUpdateRequest
from retail_order_core.observability import trace
from retail_order_core.tools.boundary import error_results, to_jsonable, validate_request

if TYPE_CHECKING:
    from retail_order_core.core.engine import InventoryCore

logger = logging.getLogger(__name__)


def _order_payload(order: Order) -> dict[str, Any]:
    return {
        "order_number": order.order_number,
        "customer_id": order.customer_id,
        "items": [
            {
                "product": item.product_name,
                "code": item.sku,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "subtotal": item.subtotal,
            }
            for item in order.items
        ],
        "total_amount": order.total_amount,
        "status": order.status,
        "notes": order.notes,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
        "delivered_at": order.delivered_at,
    }


@trace(name="tool_create_order", trace_type="tool")
@error_results
async def create_order_impl(
    core: InventoryCore,
    customer_id: str,
    items: list[dict[str, Any]],
    notes: str | None = None,
) -> dict[str, Any]:
    """
    Implementation of create_order tool.

    Args:
        core: Inventory core
        customer_id: Customer placing the order
        items: Lines as {"product_code": ..., "quantity": ...}
        notes: Optional order notes

    Returns:
        Dictionary with the created order and any warnings, or the per-line errors
    """
    result = await core.factory.create_order(customer_id, items or [], notes)

    if not result.success:
        return {
            "success": False,
            "error": "order_rejected",
            "message": "No order lines could be fulfilled",
            "errors": result.warnings,
        }

    payload = {
        "success": True,
        "message": f"Order {result.order.order_number} created",
        **_order_payload(result.order),
    }
    if result.failures:
        payload["warnings"] = result.warnings
    return to_jsonable(payload)


@trace(name="tool_update_order_status", trace_type="tool")
@error_results
async def update_order_status_impl(
    core: InventoryCore,
    order_number: str,
    new_status: str,
    notes: str | None = None,
) -> dict[str, Any]:
    """
    Implementation of update_order_status tool.

    Args:
        core: Inventory core
        order_number: The order number (e.g., ORD-2024-0001)
        new_status: Target status
        notes: Optional notes about the status change

    Returns:
        Dictionary describing the transition
    """
    request = validate_request(StatusUpdateRequest, order_number=order_number, new_status=new_status, notes=notes)
    result = await core.state_machine.transition(request.order_number, request.new_status, request.notes)

    return to_jsonable(
        {
            "success": True,
            "order_number": result.order_number,
            "previous_status": result.previous_status,
            "new_status": result.new_status,
            "updated_at": result.changed_at,
            "delivery_date": result.delivered_at,
            "stock_restored": result.stock_restored,
            "released": result.released,
            "notes": result.notes,
        }
    )


@trace(name="tool_list_orders", trace_type="tool")
@error_results
async def list_orders_impl(
    core: InventoryCore,
    status: str | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    """List orders newest first, optionally filtered by status."""
    limit = limit or core.settings.order_list_limit
    orders = await core.state_machine.list_orders(status=status, limit=limit)

    return to_jsonable(
        {
            "success": True,
            "orders_count": len(orders),
            "filter": {"status": OrderStatus(status).value} if status else {},
            "orders": [
                {
                    "order_number": o.order_number,
                    "customer_id": o.customer_id,
                    "items_count": len(o.items),
                    "total_amount": o.total_amount,
                    "status": o.status,
                    "created_at": o.created_at,
                }
                for o in orders
            ],
        }
    )


@trace(name="tool_get_order", trace_type="tool")
@error_results
async def get_order_impl(core: InventoryCore, order_number: str) -> dict[str, Any]:
    """Full order details including status history."""
    order = await core.state_machine.get_order(order_number)
    payload = _order_payload(order)
    payload["status_history"] = [
        {"from": h.from_status, "to": h.to_status, "changed_at": h.changed_at, "notes": h.notes}
        for h in order.status_history
    ]
    return to_jsonable({"success": True, **payload})
