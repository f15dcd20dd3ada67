"""Tool layer exposing the core to MCP and function-calling clients."""

from .inventory_tools import (
    check_reorder_needed_impl,
    delete_product_impl,
    get_product_sales_impl,
    get_stock_summary_impl,
    predict_stock_out_impl,
    update_stock_impl,
)
from .mcp_server import ToolExecutor, create_mcp_server, get_tool_definitions
from .order_tools import create_order_impl, get_order_impl, list_orders_impl, update_order_status_impl

__all__ = [
    "create_order_impl",
    "update_order_status_impl",
    "list_orders_impl",
    "get_order_impl",
    "update_stock_impl",
    "check_reorder_needed_impl",
    "get_stock_summary_impl",
    "delete_product_impl",
    "predict_stock_out_impl",
    "get_product_sales_impl",
    "ToolExecutor",
    "create_mcp_server",
    "get_tool_definitions",
]
