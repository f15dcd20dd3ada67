"""Unit tests for the order state machine."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from retail_order_core.core import TRANSITIONS, OrderStateMachine, allowed_transitions
from retail_order_core.data.models import OrderStatus
from retail_order_core.errors import InvalidTransitionError, NotFoundError, TransientStoreError, ValidationError
from retail_order_core.state import MemoryOrderStore

ALL_STATUSES = list(OrderStatus)


class TestTransitionTable:
    """Test the static transition table."""

    def test_allowed_transitions(self):
        """Test the lifecycle edges."""
        assert allowed_transitions(OrderStatus.PENDING) == [OrderStatus.PROCESSING, OrderStatus.CANCELLED]
        assert allowed_transitions(OrderStatus.PROCESSING) == [OrderStatus.SHIPPED, OrderStatus.CANCELLED]
        assert allowed_transitions(OrderStatus.SHIPPED) == [OrderStatus.DELIVERED]
        assert allowed_transitions(OrderStatus.DELIVERED) == []
        assert allowed_transitions(OrderStatus.CANCELLED) == []

    def test_every_status_has_an_entry(self):
        """Test the table covers every status."""
        assert set(TRANSITIONS) == set(OrderStatus)


class TestTransitions:
    """Test applying transitions to stored orders."""

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, make_core, make_product):
        """Test pending to delivered records history and delivery time."""
        core = make_core([make_product("A", 10)])
        created = await core.factory.create_order("CUST-1", [{"product_code": "A", "quantity": 1}])
        number = created.order.order_number

        for status in ("processing", "shipped", "delivered"):
            await core.state_machine.transition(number, status)

        order = await core.state_machine.get_order(number)
        assert order.status == OrderStatus.DELIVERED
        assert order.delivered_at is not None
        assert [h.to_status for h in order.status_history] == [
            OrderStatus.PENDING,
            OrderStatus.PROCESSING,
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
        ]
        assert order.delivered_at == order.status_history[-1].changed_at
        assert order.updated_at == order.status_history[-1].changed_at

    @pytest.mark.asyncio
    async def test_history_timestamps_strictly_increase(self, make_core, make_product):
        """Test a frozen clock still yields increasing history timestamps."""
        core = make_core([make_product("A", 10)])
        created = await core.factory.create_order("CUST-1", [{"product_code": "A", "quantity": 1}])
        number = created.order.order_number

        await core.state_machine.transition(number, "processing")
        await core.state_machine.transition(number, "shipped")

        order = await core.state_machine.get_order(number)
        stamps = [h.changed_at for h in order.status_history]
        assert all(a < b for a, b in zip(stamps, stamps[1:]))

    @pytest.mark.asyncio
    async def test_illegal_transition_leaves_order_unchanged(self, make_core, make_order):
        """Test pending cannot jump to shipped."""
        core = make_core(orders=[make_order("ORD-2024-0001", [("A", 1, "5.00")])])
        before = await core.state_machine.get_order("ORD-2024-0001")

        with pytest.raises(InvalidTransitionError) as exc_info:
            await core.state_machine.transition("ORD-2024-0001", OrderStatus.SHIPPED)

        assert exc_info.value.allowed == ["processing", "cancelled"]
        assert exc_info.value.to_dict()["valid_transitions"] == ["processing", "cancelled"]
        assert await core.state_machine.get_order("ORD-2024-0001") == before

    @pytest.mark.asyncio
    @pytest.mark.parametrize("terminal", [OrderStatus.DELIVERED, OrderStatus.CANCELLED])
    @pytest.mark.parametrize("target", ALL_STATUSES)
    async def test_terminal_states_reject_everything(self, make_core, make_order, terminal, target):
        """Test delivered and cancelled orders never change."""
        core = make_core(orders=[make_order("ORD-2024-0001", [("A", 1, "5.00")], status=terminal)])
        before = await core.state_machine.get_order("ORD-2024-0001")

        with pytest.raises(InvalidTransitionError):
            await core.state_machine.transition("ORD-2024-0001", target)

        assert await core.state_machine.get_order("ORD-2024-0001") == before

    @pytest.mark.asyncio
    async def test_unknown_order(self, make_core):
        """Test transitions on unknown orders raise NotFoundError and keep no lock."""
        core = make_core()

        with pytest.raises(NotFoundError):
            await core.state_machine.transition("ORD-2024-9999", "processing")

        assert len(core.state_machine._locks) == 0

    @pytest.mark.asyncio
    async def test_unknown_status(self, make_core, make_order):
        """Test unknown target statuses are refused as validation errors."""
        core = make_core(orders=[make_order("ORD-2024-0001", [("A", 1, "5.00")])])

        with pytest.raises(ValidationError):
            await core.state_machine.transition("ORD-2024-0001", "returned")

    @pytest.mark.asyncio
    async def test_lost_conditional_write(self, make_core, make_order):
        """Test a status changed by another writer is reported as an invalid transition."""
        core = make_core(orders=[make_order("ORD-2024-0001", [("A", 1, "5.00")])])

        with patch.object(core.order_store, "replace_order_if_status", AsyncMock(return_value=False)):
            with pytest.raises(InvalidTransitionError):
                await core.state_machine.transition("ORD-2024-0001", "processing")


class TestCancellation:
    """Test stock release on cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_processing_order_restores_stock(self, make_core, make_product):
        """Test cancelling a processing order releases every reserved unit once."""
        core = make_core([make_product("A", 10), make_product("B", 5)])
        created = await core.factory.create_order(
            "CUST-1",
            [{"product_code": "A", "quantity": 3}, {"product_code": "B", "quantity": 5}],
        )
        number = created.order.order_number
        await core.state_machine.transition(number, "processing")
        assert await core.ledger.current_stock("A") == 7
        assert await core.ledger.current_stock("B") == 0

        result = await core.state_machine.transition(number, "cancelled", notes="Customer request")

        assert result.previous_status == OrderStatus.PROCESSING
        assert result.stock_restored is True
        assert result.released == {"A": 3, "B": 5}
        assert await core.ledger.current_stock("A") == 10
        assert await core.ledger.current_stock("B") == 5

        order = await core.state_machine.get_order(number)
        assert order.status == OrderStatus.CANCELLED
        assert len(order.status_history) == 3
        last = order.status_history[-1]
        assert (last.from_status, last.to_status) == (OrderStatus.PROCESSING, OrderStatus.CANCELLED)
        assert last.notes == "Customer request"

    @pytest.mark.asyncio
    async def test_repeated_cancel_releases_once(self, make_core, make_product):
        """Test a second cancel fails and does not release again."""
        core = make_core([make_product("A", 10)])
        created = await core.factory.create_order("CUST-1", [{"product_code": "A", "quantity": 4}])
        number = created.order.order_number

        await core.state_machine.transition(number, "cancelled")
        with pytest.raises(InvalidTransitionError):
            await core.state_machine.transition(number, "cancelled")

        assert await core.ledger.current_stock("A") == 10

    @pytest.mark.asyncio
    async def test_concurrent_cancels_release_once(self, make_core, make_product):
        """Test racing cancels restore stock exactly once."""
        core = make_core([make_product("A", 10)])
        created = await core.factory.create_order("CUST-1", [{"product_code": "A", "quantity": 4}])
        number = created.order.order_number

        results = await asyncio.gather(
            *(core.state_machine.transition(number, "cancelled") for _ in range(5)),
            return_exceptions=True,
        )

        assert sum(1 for r in results if not isinstance(r, Exception)) == 1
        assert sum(1 for r in results if isinstance(r, InvalidTransitionError)) == 4
        assert await core.ledger.current_stock("A") == 10

    @pytest.mark.asyncio
    async def test_cancel_with_deleted_product(self, make_core, make_product):
        """Test lines for products removed since ordering are skipped."""
        core = make_core([make_product("A", 10), make_product("B", 10)])
        created = await core.factory.create_order(
            "CUST-1",
            [{"product_code": "A", "quantity": 2}, {"product_code": "B", "quantity": 2}],
        )
        await core.product_store.hard_delete("B")

        result = await core.state_machine.transition(created.order.order_number, "cancelled")

        assert result.released == {"A": 2}
        assert await core.ledger.current_stock("A") == 10

    @pytest.mark.asyncio
    async def test_release_failure_is_reported(self, make_order):
        """Test a store outage during release surfaces the unreleased lines."""
        store = MemoryOrderStore([make_order("ORD-2024-0001", [("A", 2, "5.00"), ("B", 1, "5.00")])])
        ledger = AsyncMock()
        ledger.release.side_effect = [7, TransientStoreError("Store timeout during apply_stock_delta")]
        machine = OrderStateMachine(store, ledger)

        with pytest.raises(TransientStoreError) as exc_info:
            await machine.transition("ORD-2024-0001", "cancelled")

        assert exc_info.value.details["released"] == {"A": 2}
        assert exc_info.value.details["unreleased"] == {"B": 1}
        assert exc_info.value.retryable is True
        order = await store.get_order("ORD-2024-0001")
        assert order.status == OrderStatus.CANCELLED


class TestQueries:
    """Test order lookups."""

    @pytest.mark.asyncio
    async def test_list_orders_newest_first(self, make_core, make_order, now):
        """Test listing sorts by creation time and filters by status."""
        orders = [
            make_order("ORD-2024-0001", [("A", 1, "5.00")], created_at=now - timedelta(days=2)),
            make_order("ORD-2024-0002", [("A", 1, "5.00")], OrderStatus.SHIPPED, now - timedelta(days=1)),
            make_order("ORD-2024-0003", [("A", 1, "5.00")], created_at=now),
        ]
        core = make_core(orders=orders)

        listed = await core.state_machine.list_orders()
        pending = await core.state_machine.list_orders(status="pending", limit=1)

        assert [o.order_number for o in listed] == ["ORD-2024-0003", "ORD-2024-0002", "ORD-2024-0001"]
        assert [o.order_number for o in pending] == ["ORD-2024-0003"]

    @pytest.mark.asyncio
    async def test_list_orders_invalid_limit(self, make_core):
        """Test a non-positive limit is refused."""
        with pytest.raises(ValidationError):
            await make_core().state_machine.list_orders(limit=0)
