"""FastMCP server setup for order and inventory tools."""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any

from fastmcp import FastMCP

from retail_order_core.errors import TransientStoreError

from .inventory_tools import (
    check_reorder_needed_impl,
    delete_product_impl,
    get_product_sales_impl,
    get_stock_summary_impl,
    predict_stock_out_impl,
    update_stock_impl,
)
from .order_tools import create_order_impl, get_order_impl, list_orders_impl, update_order_status_impl

if TYPE_CHECKING:
    from retail_order_core.core.engine import InventoryCore

logger = logging.getLogger(__name__)

TOOL_IMPLEMENTATIONS = {
    "create_order": create_order_impl,
    "update_order_status": update_order_status_impl,
    "list_orders": list_orders_impl,
    "get_order": get_order_impl,
    "update_stock": update_stock_impl,
    "check_reorder_needed": check_reorder_needed_impl,
    "get_stock_summary": get_stock_summary_impl,
    "delete_product": delete_product_impl,
    "predict_stock_out": predict_stock_out_impl,
    "get_product_sales": get_product_sales_impl,
}


def create_mcp_server(core: InventoryCore, name: str = "Retail Order Core") -> FastMCP:
    """
    Build a FastMCP server whose tools run against the given core.

    Args:
        core: Inventory core the tools operate on
        name: Server name advertised to clients

    Returns:
        Configured FastMCP instance
    """
    mcp = FastMCP(name)

    @mcp.tool()
    async def create_order(customer_id: str, items: list[dict], notes: str | None = None) -> dict:
        """
        Create a customer order with one or more items. Reserves stock and sets status to pending.

        Args:
            customer_id: Customer placing the order
            items: Items as {"product_code": str, "quantity": int}
            notes: Optional order notes
        """
        logger.info(f"Tool call: create_order(customer_id={customer_id}, items={len(items)})")
        return await create_order_impl(core, customer_id=customer_id, items=items, notes=notes)

    @mcp.tool()
    async def update_order_status(order_number: str, new_status: str, notes: str | None = None) -> dict:
        """
        Update the status of an order. Cancelling restores reserved stock.

        Args:
            order_number: The order number (e.g., ORD-2024-0001)
            new_status: pending, processing, shipped, delivered or cancelled
            notes: Optional notes about the status change
        """
        logger.info(f"Tool call: update_order_status(order_number={order_number}, new_status={new_status})")
        return await update_order_status_impl(core, order_number=order_number, new_status=new_status, notes=notes)

    @mcp.tool()
    async def list_orders(status: str | None = None, limit: int | None = None) -> dict:
        """List orders newest first, optionally filtered by status."""
        logger.info(f"Tool call: list_orders(status={status}, limit={limit})")
        return await list_orders_impl(core, status=status, limit=limit)

    @mcp.tool()
    async def get_order(order_number: str) -> dict:
        """Get full details and status history of an order."""
        logger.info(f"Tool call: get_order(order_number={order_number})")
        return await get_order_impl(core, order_number=order_number)

    @mcp.tool()
    async def update_stock(
        product_code: str,
        quantity: int,
        adjustment_type: str = "set",
        reason: str | None = None,
    ) -> dict:
        """
        Update the stock quantity for a product.

        Args:
            product_code: The product code to update
            quantity: New stock quantity (set) or adjustment amount (add/subtract)
            adjustment_type: set, add or subtract (default: set)
            reason: Reason for the stock adjustment (for audit trail)
        """
        logger.info(f"Tool call: update_stock(product_code={product_code}, {adjustment_type} {quantity})")
        return await update_stock_impl(
            core,
            product_code=product_code,
            quantity=quantity,
            adjustment_type=adjustment_type,
            reason=reason,
        )

    @mcp.tool()
    async def check_reorder_needed(
        threshold: int | None = None,
        category: str | None = None,
        include_out_of_stock: bool = True,
    ) -> dict:
        """
        Check which products need to be reordered based on current stock levels.

        Args:
            threshold: Stock quantity threshold to consider low (default: 20)
            category: Filter by product category
            include_out_of_stock: Include products with zero stock (default: true)
        """
        logger.info(f"Tool call: check_reorder_needed(threshold={threshold}, category={category})")
        return await check_reorder_needed_impl(
            core, threshold=threshold, category=category, include_out_of_stock=include_out_of_stock
        )

    @mcp.tool()
    async def get_stock_summary(group_by: str = "category") -> dict:
        """Summarize stock levels grouped by category or supplier."""
        logger.info(f"Tool call: get_stock_summary(group_by={group_by})")
        return await get_stock_summary_impl(core, group_by=group_by)

    @mcp.tool()
    async def delete_product(product_code: str, hard_delete: bool = False) -> dict:
        """Delete a product (soft by default). Refused while the product has open orders."""
        logger.info(f"Tool call: delete_product(product_code={product_code}, hard_delete={hard_delete})")
        return await delete_product_impl(core, product_code=product_code, hard_delete=hard_delete)

    @mcp.tool()
    async def predict_stock_out(
        days_lookback: int | None = None,
        max_days_until_stockout: int | None = None,
        category: str | None = None,
    ) -> dict:
        """
        Predict when products will run out of stock based on historical sales velocity.

        Args:
            days_lookback: Number of past days to calculate sales velocity (default: 30)
            max_days_until_stockout: Only show products running out within this many days (default: 60)
            category: Filter by product category
        """
        logger.info(f"Tool call: predict_stock_out(days_lookback={days_lookback}, category={category})")
        return await predict_stock_out_impl(
            core,
            days_lookback=days_lookback,
            max_days_until_stockout=max_days_until_stockout,
            category=category,
        )

    @mcp.tool()
    async def get_product_sales(product_code: str | None = None, limit: int = 10) -> dict:
        """Get sales statistics per product, ranked by revenue."""
        logger.info(f"Tool call: get_product_sales(product_code={product_code}, limit={limit})")
        return await get_product_sales_impl(core, product_code=product_code, limit=limit)

    return mcp


class ToolExecutor:
    """Execute tools by name against a core."""

    def __init__(self, core: InventoryCore):
        """
        Initialize tool executor.

        Args:
            core: Inventory core the tools operate on
        """
        self.core = core
        self.tools = dict(TOOL_IMPLEMENTATIONS)
        logger.info(f"Initialized ToolExecutor with {len(self.tools)} tools")

    async def execute_tool(self, tool_name: str, args: dict[str, Any]) -> dict[str, Any]:
        """
        Execute a tool by name.

        Args:
            tool_name: Name of the tool to execute
            args: Tool arguments

        Returns:
            Tool execution result. Store outages come back with retryable=True.
        """
        if not tool_name:
            logger.error("Tool name is empty or None")
            return {"success": False, "message": "Tool name is required"}

        if tool_name not in self.tools:
            logger.error(f"Unknown tool: {tool_name}")
            return {"success": False, "message": f"Unknown tool: {tool_name}"}

        tool = self.tools[tool_name]
        args = args or {}
        try:
            inspect.signature(tool).bind(self.core, **args)
        except TypeError as e:
            logger.error(f"Bad arguments for tool {tool_name}: {e}")
            return {"success": False, "error": "validation_error", "message": f"Invalid arguments: {e}"}

        try:
            result = await tool(self.core, **args)
            logger.info(f"Executed tool: {tool_name} (success={result.get('success')})")
            return result
        except TransientStoreError as e:
            logger.error(f"Transient store failure in {tool_name}: {e.message}")
            return e.to_dict()


def get_tool_definitions() -> list[dict]:
    """
    Get OpenAI-compatible tool definitions for function calling.

    Returns:
        List of tool definition dictionaries
    """

    def tool(name: str, description: str, properties: dict, required: list[str] | None = None) -> dict:
        parameters: dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            parameters["required"] = required
        return {"type": "function", "function": {"name": name, "description": description, "parameters": parameters}}

    statuses = ["pending", "processing", "shipped", "delivered", "cancelled"]
    return [
        tool(
            "create_order",
            "Create a customer order with one or more items. Reserves stock; lines that cannot be "
            "fulfilled are reported as warnings.",
            {
                "customer_id": {"type": "string", "description": "Customer ID placing the order"},
                "items": {
                    "type": "array",
                    "description": "Array of items to order",
                    "items": {
                        "type": "object",
                        "properties": {
                            "product_code": {"type": "string", "description": "Product code"},
                            "quantity": {"type": "integer", "minimum": 1, "description": "Quantity to order"},
                        },
                        "required": ["product_code", "quantity"],
                    },
                },
                "notes": {"type": "string", "description": "Optional order notes"},
            },
            ["customer_id", "items"],
        ),
        tool(
            "update_order_status",
            "Update the status of an order. Only legal transitions are accepted; cancelling restores stock.",
            {
                "order_number": {"type": "string", "description": "The order number (e.g., ORD-2024-0001)"},
                "new_status": {"type": "string", "enum": statuses, "description": "New status for the order"},
                "notes": {"type": "string", "description": "Optional notes about the status change"},
            },
            ["order_number", "new_status"],
        ),
        tool(
            "list_orders",
            "List orders newest first. Can filter by order status.",
            {
                "status": {"type": "string", "enum": statuses, "description": "Filter by order status"},
                "limit": {"type": "integer", "description": "Maximum number of orders to return", "default": 50},
            },
        ),
        tool(
            "get_order",
            "Get full details and status history of an order.",
            {"order_number": {"type": "string", "description": "The order number"}},
            ["order_number"],
        ),
        tool(
            "update_stock",
            "Update the stock quantity for a product: set an absolute value, or add/subtract.",
            {
                "product_code": {"type": "string", "description": "The product code to update"},
                "quantity": {"type": "integer", "minimum": 0, "description": "Quantity or adjustment amount"},
                "adjustment_type": {"type": "string", "enum": ["set", "add", "subtract"], "default": "set"},
                "reason": {"type": "string", "description": "Reason for the stock adjustment"},
            },
            ["product_code", "quantity"],
        ),
        tool(
            "check_reorder_needed",
            "Check which products need to be reordered based on current stock levels and a threshold.",
            {
                "threshold": {"type": "integer", "description": "Stock threshold to consider low", "default": 20},
                "category": {"type": "string", "description": "Filter by product category"},
                "include_out_of_stock": {"type": "boolean", "default": True},
            },
        ),
        tool(
            "get_stock_summary",
            "Summarize stock units and value grouped by category or supplier.",
            {"group_by": {"type": "string", "enum": ["category", "supplier"], "default": "category"}},
        ),
        tool(
            "delete_product",
            "Delete a product from the catalog (soft delete by default). Refused while it has open orders.",
            {
                "product_code": {"type": "string", "description": "Product code to delete"},
                "hard_delete": {"type": "boolean", "default": False},
            },
            ["product_code"],
        ),
        tool(
            "predict_stock_out",
            "Predict when products will run out of stock based on historical sales velocity.",
            {
                "days_lookback": {"type": "integer", "description": "Days used for velocity", "default": 30},
                "max_days_until_stockout": {"type": "integer", "default": 60},
                "category": {"type": "string", "description": "Filter by product category"},
            },
        ),
        tool(
            "get_product_sales",
            "Get sales statistics per product, ranked by revenue.",
            {
                "product_code": {"type": "string", "description": "Optional product code"},
                "limit": {"type": "integer", "default": 10},
            },
        ),
    ]
