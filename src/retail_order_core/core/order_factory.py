"""Order factory: turns an order request into a pending order with reserved stock."""

import logging
from collections.abc import Callable, Sequence
from datetime import datetime

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from retail_order_core.core.stock_ledger import StockLedger
from retail_order_core.data.models import (
    CreateOrderRequest,
    LineFailure,
    Order,
    OrderCreationResult,
    OrderItem,
    OrderLineRequest,
    OrderStatus,
    StatusChange,
    to_money,
    utcnow,
)
from retail_order_core.errors import (
    InsufficientStockError,
    NotFoundError,
    OrderCoreError,
    TransientStoreError,
    ValidationError,
)
from retail_order_core.observability import trace
from retail_order_core.state.stores import KeyedLocks, OrderStore, ProductStore, call_store

logger = logging.getLogger(__name__)


def parse_order_request(
    customer_id: str,
    lines: Sequence[OrderLineRequest | dict],
    notes: str | None = None,
) -> CreateOrderRequest:
    """Validate a raw order request, raising ValidationError on malformed input."""
    try:
        return CreateOrderRequest.model_validate(
            {
                "customer_id": customer_id,
                "items": [line.model_dump() if isinstance(line, BaseModel) else line for line in lines],
                "notes": notes,
            }
        )
    except SchemaValidationError as e:
        raise ValidationError(
            "Invalid order request",
            errors=e.errors(include_url=False, include_context=False),
        ) from e


class OrderFactory:
    """
    Creates orders line by line.

    Each line is all-or-nothing: it is either fully reserved and priced or
    excluded with a warning. The order is created if at least one line is
    accepted; when every line fails, nothing is created and the per-line
    errors are returned.

    The requested products stay locked in product_guard from the first
    reservation until the order is stored, so the catalog cannot delete one
    of them while its order is still invisible to open-order counts.
    """

    def __init__(
        self,
        product_store: ProductStore,
        order_store: OrderStore,
        ledger: StockLedger,
        order_number_prefix: str = "ORD",
        timeout: float = 5.0,
        clock: Callable[[], datetime] = utcnow,
        product_guard: KeyedLocks | None = None,
    ):
        self.products = product_store
        self.orders = order_store
        self.ledger = ledger
        self.prefix = order_number_prefix
        self.timeout = timeout
        self.clock = clock
        self.product_guard = product_guard or KeyedLocks()

    async def next_order_number(self, created_at: datetime) -> str:
        """Order number of the form ORD-<year>-<seq>, sequence restarting each year."""
        year = created_at.year
        seq = await call_store(self.orders.next_order_sequence(year), self.timeout, "next_order_sequence")
        return f"{self.prefix}-{year}-{seq:04d}"

    async def _reserve_line(self, line: OrderLineRequest) -> OrderItem:
        product = await call_store(self.products.get_product(line.product_code), self.timeout, "get_product")
        if product is None or not product.is_active:
            raise NotFoundError(f"Product not found: {line.product_code}", product_code=line.product_code)

        await self.ledger.reserve(product.sku, line.quantity)
        return OrderItem(
            sku=product.sku,
            product_name=product.name,
            quantity=line.quantity,
            unit_price=product.price,
        )

    async def _rollback(self, items: list[OrderItem], error: Exception) -> None:
        """
        Release the reservations of an order that could not be stored.

        Raises:
            TransientStoreError: Some reservations could not be released; carries
                released and unreleased quantities, chained from error
        """
        released: dict[str, int] = {}
        unreleased: dict[str, int] = {}
        for item in items:
            try:
                await self.ledger.release(item.sku, item.quantity)
            except OrderCoreError as e:
                logger.error(f"Failed to release {item.quantity} x {item.sku} during rollback: {e.message}")
                unreleased[item.sku] = unreleased.get(item.sku, 0) + item.quantity
                continue
            released[item.sku] = released.get(item.sku, 0) + item.quantity

        if unreleased:
            raise TransientStoreError(
                "Order not created; stock release incomplete",
                released=released,
                unreleased=unreleased,
                cause=error.code if isinstance(error, OrderCoreError) else type(error).__name__,
            ) from error

    @trace(name="create_order", trace_type="order")
    async def create_order(
        self,
        customer_id: str,
        lines: Sequence[OrderLineRequest | dict],
        notes: str | None = None,
    ) -> OrderCreationResult:
        """
        Create a pending order, reserving stock for each requested line.

        Args:
            customer_id: Customer placing the order
            lines: Requested lines (product_code, quantity)
            notes: Optional order notes

        Returns:
            OrderCreationResult; on success carries the order plus any excluded
            lines as warnings, on full failure carries every line's error

        Raises:
            ValidationError: Malformed request (no lines, non-positive quantity, ...)
            TransientStoreError: Store timeout; reservations made so far are released,
                and any that could not be are listed as unreleased
        """
        request = parse_order_request(customer_id, lines, notes)

        accepted: list[OrderItem] = []
        failures: list[LineFailure] = []
        async with self.product_guard.hold_all(line.product_code for line in request.items):
            try:
                for line in request.items:
                    try:
                        accepted.append(await self._reserve_line(line))
                    except (NotFoundError, InsufficientStockError) as e:
                        failures.append(
                            LineFailure(
                                product_code=line.product_code, quantity=line.quantity, error=e.code, message=e.message
                            )
                        )

                if not accepted:
                    logger.warning(
                        f"Order for customer {request.customer_id} rejected: all {len(failures)} lines failed"
                    )
                    return OrderCreationResult(success=False, failures=failures)

                created_at = self.clock()
                order = Order(
                    order_number=await self.next_order_number(created_at),
                    customer_id=request.customer_id,
                    items=accepted,
                    total_amount=to_money(sum((item.subtotal for item in accepted), start=to_money(0))),
                    status=OrderStatus.PENDING,
                    status_history=[
                        StatusChange(from_status=None, to_status=OrderStatus.PENDING, changed_at=created_at)
                    ],
                    notes=request.notes,
                    created_at=created_at,
                    updated_at=created_at,
                )
                await call_store(self.orders.insert_order(order), self.timeout, "insert_order")
            except Exception as e:
                await self._rollback(accepted, e)
                raise

        logger.info(
            f"Created new order {order.order_number} (total {order.total_amount}, "
            f"{len(accepted)} lines, {len(failures)} warnings)"
        )
        return OrderCreationResult(success=True, order=order, failures=failures)
