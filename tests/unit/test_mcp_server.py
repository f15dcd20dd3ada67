"""Unit tests for MCP server tool executor."""

from unittest.mock import AsyncMock, patch

import pytest

from retail_order_core.errors import TransientStoreError
from retail_order_core.tools.mcp_server import ToolExecutor, create_mcp_server, get_tool_definitions

TOOL_NAMES = {
    "create_order",
    "update_order_status",
    "list_orders",
    "get_order",
    "update_stock",
    "check_reorder_needed",
    "get_stock_summary",
    "delete_product",
    "predict_stock_out",
    "get_product_sales",
}


@pytest.fixture
def executor(make_core, make_product):
    return ToolExecutor(make_core([make_product("P1", 10, price="5.00")]))


class TestToolExecutor:
    """Test tool executor functionality."""

    @pytest.mark.asyncio
    async def test_execute_tool_with_empty_name(self, executor):
        """Test that empty tool name returns proper error."""
        result = await executor.execute_tool("", {})

        assert result["success"] is False
        assert "Tool name is required" in result["message"]

    @pytest.mark.asyncio
    async def test_execute_tool_with_none_name(self, executor):
        """Test that None tool name returns proper error."""
        result = await executor.execute_tool(None, {})

        assert result["success"] is False
        assert "Tool name is required" in result["message"]

    @pytest.mark.asyncio
    async def test_execute_tool_with_unknown_name(self, executor):
        """Test that unknown tool name returns proper error."""
        result = await executor.execute_tool("nonexistent_tool", {})

        assert result["success"] is False
        assert "Unknown tool: nonexistent_tool" in result["message"]

    @pytest.mark.asyncio
    async def test_execute_create_order_tool(self, executor):
        """Test executing create_order tool."""
        result = await executor.execute_tool(
            "create_order", {"customer_id": "CUST-1", "items": [{"product_code": "P1", "quantity": 2}]}
        )

        assert result["success"] is True
        assert result["total_amount"] == "10.00"

    @pytest.mark.asyncio
    async def test_execute_with_unexpected_argument(self, executor):
        """Test unexpected arguments are reported instead of raised."""
        result = await executor.execute_tool("get_stock_summary", {"colour": "red"})

        assert result["success"] is False
        assert result["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_execute_with_missing_argument(self, executor):
        """Test a missing required argument is reported as a validation error."""
        result = await executor.execute_tool("get_order", {})

        assert result["success"] is False
        assert result["error"] == "validation_error"
        assert "order_number" in result["message"]

    @pytest.mark.asyncio
    async def test_type_error_inside_tool_propagates(self, executor):
        """Test a TypeError raised by the tool body is not reported as bad arguments."""

        async def broken_summary(core, group_by="category"):
            return len(None)

        executor.tools["get_stock_summary"] = broken_summary

        with pytest.raises(TypeError):
            await executor.execute_tool("get_stock_summary", {"group_by": "supplier"})

    @pytest.mark.asyncio
    async def test_transient_error_is_retryable(self, executor):
        """Test store outages come back flagged as retryable."""
        failing = AsyncMock(side_effect=TransientStoreError("Store timeout during list_products"))

        with patch.object(executor.core.product_store, "list_products", failing):
            result = await executor.execute_tool("check_reorder_needed", {})

        assert result["success"] is False
        assert result["error"] == "transient"
        assert result["retryable"] is True

    def test_tool_executor_initializes_all_tools(self, executor):
        """Test that tool executor initializes with all expected tools."""
        assert set(executor.tools) == TOOL_NAMES


class TestToolDefinitions:
    """Test function-calling schemas."""

    def test_definitions_cover_all_tools(self):
        """Test every tool has a definition."""
        definitions = get_tool_definitions()

        assert {d["function"]["name"] for d in definitions} == TOOL_NAMES
        assert all(d["type"] == "function" for d in definitions)

    def test_required_parameters(self):
        """Test required parameters are declared."""
        definitions = {d["function"]["name"]: d["function"] for d in get_tool_definitions()}

        assert definitions["create_order"]["parameters"]["required"] == ["customer_id", "items"]
        assert definitions["update_order_status"]["parameters"]["required"] == ["order_number", "new_status"]
        assert "required" not in definitions["list_orders"]["parameters"]


class TestMcpServer:
    """Test FastMCP registration."""

    @pytest.mark.asyncio
    async def test_registers_all_tools(self, make_core):
        """Test every tool is registered on the server."""
        mcp = create_mcp_server(make_core())

        tools = await mcp.get_tools()

        assert set(tools) == TOOL_NAMES
