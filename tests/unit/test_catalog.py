"""Unit tests for catalog deletion rules and stock summaries."""

import asyncio
from decimal import Decimal

import pytest

from retail_order_core.core import InventoryCore
from retail_order_core.data.models import OrderStatus
from retail_order_core.errors import NotFoundError, ProductInUseError, ValidationError
from retail_order_core.state import MemoryOrderStore, MemoryProductStore


class TestDeleteProduct:
    """Test product deletion."""

    @pytest.mark.asyncio
    async def test_soft_delete(self, make_core, make_product, now):
        """Test soft delete keeps the record but deactivates it."""
        core = make_core([make_product("A", 10)])

        deleted = await core.catalog.delete_product("A")

        assert deleted.sku == "A"
        product = await core.product_store.get_product("A")
        assert product.is_active is False
        assert product.deleted_at == now
        assert await core.product_store.list_products() == []

    @pytest.mark.asyncio
    async def test_hard_delete(self, make_core, make_product):
        """Test hard delete removes the record."""
        core = make_core([make_product("A", 10)])

        await core.catalog.delete_product("A", hard_delete=True)

        assert await core.product_store.get_product("A") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [OrderStatus.PENDING, OrderStatus.PROCESSING])
    async def test_refused_with_open_orders(self, make_core, make_product, make_order, status):
        """Test products on pending or processing orders cannot be deleted."""
        core = make_core([make_product("A", 10)], [make_order("ORD-2024-0001", [("A", 1, "10.00")], status)])

        with pytest.raises(ProductInUseError) as exc_info:
            await core.catalog.delete_product("A", hard_delete=True)

        assert isinstance(exc_info.value, ValidationError)
        assert exc_info.value.details["pending_orders"] == 1
        assert (await core.product_store.get_product("A")).is_active is True

    @pytest.mark.asyncio
    async def test_allowed_with_closed_orders(self, make_core, make_product, make_order):
        """Test shipped, delivered and cancelled orders do not block deletion."""
        orders = [
            make_order("ORD-2024-0001", [("A", 1, "10.00")], OrderStatus.SHIPPED),
            make_order("ORD-2024-0002", [("A", 1, "10.00")], OrderStatus.DELIVERED),
            make_order("ORD-2024-0003", [("A", 1, "10.00")], OrderStatus.CANCELLED),
        ]
        core = make_core([make_product("A", 10)], orders)

        await core.catalog.delete_product("A")

        assert (await core.product_store.get_product("A")).is_active is False

    @pytest.mark.asyncio
    async def test_unknown_product(self, make_core):
        """Test deleting an unknown product raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await make_core().catalog.delete_product("MISSING")


class GatedOrderStore(MemoryOrderStore):
    """Order store that pauses an order between its reservation and insert."""

    def __init__(self):
        super().__init__()
        self.numbering = asyncio.Event()
        self.resume = asyncio.Event()

    async def next_order_sequence(self, year):
        self.numbering.set()
        await self.resume.wait()
        return await super().next_order_sequence(year)


class TestDeleteDuringOrderCreation:
    """Test deletion against orders that are still being created."""

    @pytest.mark.asyncio
    async def test_delete_waits_for_in_flight_order(self, make_product, settings, now):
        """Test a delete issued after stock is reserved sees the new order and is refused."""
        orders = GatedOrderStore()
        core = InventoryCore(MemoryProductStore([make_product("P1", 10)]), orders, settings=settings, clock=lambda: now)

        create = asyncio.create_task(core.factory.create_order("CUST-1", [{"product_code": "P1", "quantity": 4}]))
        await orders.numbering.wait()
        delete = asyncio.create_task(core.catalog.delete_product("P1", hard_delete=True))
        for _ in range(5):
            await asyncio.sleep(0)
        assert not delete.done()

        orders.resume.set()
        result = await create
        with pytest.raises(ProductInUseError):
            await delete

        assert result.success is True
        product = await core.product_store.get_product("P1")
        assert product is not None
        assert product.stock_quantity == 6
        assert await orders.count_open_orders("P1") == 1
        assert len(core.product_guard) == 0

    @pytest.mark.asyncio
    async def test_order_after_delete_sees_inactive_product(self, make_core, make_product):
        """Test an order queued behind a soft delete is rejected without reserving."""
        core = make_core([make_product("P1", 10)])

        async with core.product_guard.hold("P1"):
            delete = asyncio.create_task(core.catalog.delete_product("P1"))
            create = asyncio.create_task(
                core.factory.create_order("CUST-1", [{"product_code": "P1", "quantity": 4}])
            )
            await asyncio.sleep(0)

        await delete
        result = await create

        assert result.success is False
        assert result.failures[0].error == "not_found"
        assert await core.ledger.current_stock("P1") == 10


class TestStockSummary:
    """Test stock summaries."""

    @pytest.mark.asyncio
    async def test_group_by_category(self, make_core, make_product):
        """Test per-category totals, health and ordering by value."""
        products = [
            make_product("I-1", 0, price="10.00", category="interior"),
            make_product("I-2", 30, price="10.00", category="interior"),
            make_product("T-1", 5, price="1.00", category="tools"),
            make_product("T-2", 6, price="1.00", category="tools"),
            make_product("T-3", 7, price="1.00", category="tools"),
        ]
        core = make_core(products)

        summary = await core.catalog.stock_summary("category")

        assert [g.name for g in summary.groups] == ["interior", "tools"]
        interior, tools = summary.groups
        assert interior.units_in_stock == 30
        assert interior.stock_value == Decimal("300.00")
        assert interior.min_stock == 0
        assert interior.max_stock == 30
        assert interior.avg_stock_per_product == 15
        assert interior.health == "CRITICAL"
        assert tools.low_stock_count == 3
        assert tools.health == "WARNING"
        assert summary.total_products == 5
        assert summary.total_units == 48
        assert summary.total_value == Decimal("318.00")
        assert summary.out_of_stock == 1

    @pytest.mark.asyncio
    async def test_group_by_supplier(self, make_core, make_product):
        """Test grouping by supplier, with missing suppliers grouped as unknown."""
        products = [
            make_product("A", 50, supplier="Acme"),
            make_product("B", 50, supplier=None),
        ]
        core = make_core(products)

        summary = await core.catalog.stock_summary("supplier")

        assert {g.name for g in summary.groups} == {"Acme", "unknown"}
        assert all(g.health == "HEALTHY" for g in summary.groups)

    @pytest.mark.asyncio
    async def test_invalid_grouping(self, make_core):
        """Test unknown group_by values are refused."""
        with pytest.raises(ValidationError):
            await make_core().catalog.stock_summary("color")
