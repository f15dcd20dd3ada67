"""Order status lifecycle and its stock side effects."""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from retail_order_core.core.stock_ledger import StockLedger
from retail_order_core.data.models import Order, OrderStatus, StatusChange, TransitionResult, utcnow
from retail_order_core.errors import (
    InvalidTransitionError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)
from retail_order_core.observability import trace
from retail_order_core.state.stores import KeyedLocks, OrderStore, call_store

logger = logging.getLogger(__name__)

TRANSITIONS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
    OrderStatus.PENDING: (OrderStatus.PROCESSING, OrderStatus.CANCELLED),
    OrderStatus.PROCESSING: (OrderStatus.SHIPPED, OrderStatus.CANCELLED),
    OrderStatus.SHIPPED: (OrderStatus.DELIVERED,),
    OrderStatus.DELIVERED: (),
    OrderStatus.CANCELLED: (),
}

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)


def allowed_transitions(status: OrderStatus) -> list[OrderStatus]:
    return list(TRANSITIONS[status])


def coerce_status(value: OrderStatus | str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError as e:
        valid = [s.value for s in OrderStatus]
        raise ValidationError(f"Unknown order status: {value!r}", valid_statuses=valid) from e


class OrderStateMachine:
    """
    Validates and applies order status transitions.

    A transition is written with a conditional replace ("only if the stored
    status is still the one we read"), under a per-order lock for callers in
    this process. Stock is released on cancellation only after that write
    succeeds, so a repeated or concurrent cancel can never release twice.
    """

    def __init__(
        self,
        order_store: OrderStore,
        ledger: StockLedger,
        timeout: float = 5.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.orders = order_store
        self.ledger = ledger
        self.timeout = timeout
        self.clock = clock
        self._locks = KeyedLocks()

    async def get_order(self, order_number: str) -> Order:
        order = await call_store(self.orders.get_order(order_number), self.timeout, "get_order")
        if order is None:
            raise NotFoundError("Order not found", order_number=order_number)
        return order

    async def list_orders(self, status: OrderStatus | str | None = None, limit: int = 50) -> list[Order]:
        if limit <= 0:
            raise ValidationError(f"Limit must be positive, got {limit}", limit=limit)
        status = coerce_status(status) if status is not None else None
        return await call_store(self.orders.list_orders(status=status, limit=limit), self.timeout, "list_orders")

    def _next_timestamp(self, order: Order) -> datetime:
        now = self.clock()
        if order.status_history and now <= order.status_history[-1].changed_at:
            now = order.status_history[-1].changed_at + timedelta(microseconds=1)
        return now

    @trace(name="order_transition", trace_type="order")
    async def transition(
        self,
        order_number: str,
        new_status: OrderStatus | str,
        notes: str | None = None,
    ) -> TransitionResult:
        """
        Move an order to new_status.

        Args:
            order_number: Order to update
            new_status: Target status
            notes: Optional note stored in the status history

        Returns:
            TransitionResult describing the change and any stock released

        Raises:
            NotFoundError: Unknown order
            InvalidTransitionError: Target not reachable from the current status; order unchanged
            TransientStoreError: Store timeout or unavailability
        """
        target = coerce_status(new_status)

        async with self._locks.hold(order_number):
            order = await self.get_order(order_number)
            current = order.status
            if target not in TRANSITIONS[current]:
                logger.warning(f"Rejected transition for {order_number}: {current.value} -> {target.value}")
                raise InvalidTransitionError(
                    order_number, current.value, target.value, [s.value for s in allowed_transitions(current)]
                )

            changed_at = self._next_timestamp(order)
            update = {
                "status": target,
                "updated_at": changed_at,
                "status_history": [
                    *order.status_history,
                    StatusChange(from_status=current, to_status=target, changed_at=changed_at, notes=notes),
                ],
            }
            if target == OrderStatus.DELIVERED:
                update["delivered_at"] = changed_at
            updated = order.model_copy(update=update)

            written = await call_store(
                self.orders.replace_order_if_status(updated, current), self.timeout, "replace_order_if_status"
            )
            if not written:
                # Another writer moved the order after we read it
                latest = await self.get_order(order_number)
                raise InvalidTransitionError(
                    order_number,
                    latest.status.value,
                    target.value,
                    [s.value for s in allowed_transitions(latest.status)],
                )

            released: dict[str, int] = {}
            if target == OrderStatus.CANCELLED:
                released = await self._release_stock(updated)

        logger.info(f"Updated order status {order_number}: {current.value} -> {target.value}")
        return TransitionResult(
            order_number=order_number,
            previous_status=current,
            new_status=target,
            changed_at=changed_at,
            delivered_at=updated.delivered_at,
            stock_restored=target == OrderStatus.CANCELLED,
            released=released,
            notes=notes,
        )

    async def _release_stock(self, order: Order) -> dict[str, int]:
        """Release every line of a cancelled order, reporting lines that could not be restored."""
        released: dict[str, int] = {}
        unreleased: dict[str, int] = {}
        for item in order.items:
            try:
                await self.ledger.release(item.sku, item.quantity)
            except NotFoundError:
                logger.warning(
                    f"Product {item.sku} no longer exists; {item.quantity} units of {order.order_number} not restored"
                )
                continue
            except TransientStoreError:
                unreleased[item.sku] = unreleased.get(item.sku, 0) + item.quantity
                continue
            released[item.sku] = released.get(item.sku, 0) + item.quantity

        if unreleased:
            logger.error(f"Order {order.order_number} cancelled but stock not restored for {unreleased}")
            raise TransientStoreError(
                f"Order {order.order_number} cancelled; stock release incomplete",
                order_number=order.order_number,
                released=released,
                unreleased=unreleased,
            )
        return released
