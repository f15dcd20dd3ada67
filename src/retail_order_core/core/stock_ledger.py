"""Stock ledger: the only writer of product quantity-on-hand."""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Literal

from retail_order_core.data.models import StockChange, utcnow
from retail_order_core.errors import NotFoundError, ValidationError
from retail_order_core.observability import log_event, trace
from retail_order_core.state.stores import ProductStore, call_store

logger = logging.getLogger(__name__)


def _require_quantity(quantity: int, sku: str, allow_zero: bool = False) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError(f"Quantity must be an integer, got {quantity!r}", product_code=sku)
    if quantity < 0 or (quantity == 0 and not allow_zero):
        bound = "non-negative" if allow_zero else "positive"
        raise ValidationError(f"Quantity must be {bound}, got {quantity}", product_code=sku, quantity=quantity)


class StockLedger:
    """
    Applies stock changes through the product store's conditional updates.

    The ledger never reads stock and then writes a computed value: every
    change is handed to the store as a delta (or an absolute value), and the
    store enforces the non-negative floor atomically. Each call is bounded
    by timeout; a slow or unreachable store surfaces as TransientStoreError.
    """

    def __init__(
        self,
        product_store: ProductStore,
        timeout: float = 5.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.products = product_store
        self.timeout = timeout
        self.clock = clock

    async def current_stock(self, sku: str) -> int:
        product = await call_store(self.products.get_product(sku), self.timeout, "get_product")
        if product is None:
            raise NotFoundError(f"Product not found: {sku}", product_code=sku)
        return product.stock_quantity

    async def _apply(self, sku: str, delta: int, clamp_at_zero: bool = False) -> tuple[int, int]:
        return await call_store(
            self.products.apply_stock_delta(sku, delta, at=self.clock(), clamp_at_zero=clamp_at_zero),
            self.timeout,
            "apply_stock_delta",
        )

    @trace(name="ledger_reserve", trace_type="ledger")
    async def reserve(self, sku: str, quantity: int) -> int:
        """
        Take quantity out of stock for an order line.

        Returns:
            The new stock level

        Raises:
            InsufficientStockError: If quantity exceeds the stock on hand (stock unchanged)
            NotFoundError: If the product does not exist
        """
        _require_quantity(quantity, sku)
        previous, new = await self._apply(sku, -quantity)
        logger.info(f"Reserved {quantity} x {sku}: {previous} -> {new}")
        return new

    @trace(name="ledger_release", trace_type="ledger")
    async def release(self, sku: str, quantity: int) -> int:
        """Return previously reserved quantity to stock. Returns the new stock level."""
        _require_quantity(quantity, sku)
        previous, new = await self._apply(sku, quantity)
        logger.info(f"Released {quantity} x {sku}: {previous} -> {new}")
        return new

    @trace(name="ledger_set_absolute", trace_type="ledger")
    async def set_absolute(self, sku: str, quantity: int) -> int:
        """Replace the stock level. Returns the new stock level."""
        _require_quantity(quantity, sku, allow_zero=True)
        previous, new = await call_store(
            self.products.set_stock(sku, quantity, at=self.clock()), self.timeout, "set_stock"
        )
        logger.info(f"Set stock for {sku}: {previous} -> {new}")
        return new

    @trace(name="ledger_adjust_relative", trace_type="ledger")
    async def adjust_relative(self, sku: str, delta: int, mode: Literal["add", "subtract"] = "add") -> int:
        """
        Add to or subtract from the stock level.

        Subtracting more than is on hand leaves the product at zero rather
        than failing.

        Returns:
            The new stock level
        """
        if mode not in ("add", "subtract"):
            raise ValidationError(f"Invalid adjustment mode: {mode}", product_code=sku)
        _require_quantity(delta, sku, allow_zero=True)
        signed = delta if mode == "add" else -delta
        previous, new = await self._apply(sku, signed, clamp_at_zero=True)
        logger.info(f"Adjusted stock for {sku} ({mode} {delta}): {previous} -> {new}")
        return new

    async def update_stock(
        self,
        sku: str,
        quantity: int,
        adjustment_type: Literal["set", "add", "subtract"] = "set",
        reason: str | None = None,
    ) -> StockChange:
        """
        Manual stock adjustment with an audit record.

        Args:
            sku: Product code
            quantity: New absolute quantity (set) or adjustment amount (add/subtract)
            adjustment_type: set, add or subtract
            reason: Reason for the adjustment (audit trail)

        Returns:
            StockChange with the previous and new stock levels
        """
        if adjustment_type == "set":
            _require_quantity(quantity, sku, allow_zero=True)
            previous, new = await call_store(
                self.products.set_stock(sku, quantity, at=self.clock()), self.timeout, "set_stock"
            )
        elif adjustment_type in ("add", "subtract"):
            _require_quantity(quantity, sku, allow_zero=True)
            signed = quantity if adjustment_type == "add" else -quantity
            previous, new = await self._apply(sku, signed, clamp_at_zero=True)
        else:
            raise ValidationError(f"Invalid adjustment type: {adjustment_type}", product_code=sku)

        change = StockChange(
            sku=sku,
            previous_stock=previous,
            new_stock=new,
            adjustment_type=adjustment_type,
            reason=reason,
            updated_at=self.clock(),
        )
        logger.info(
            f"Stock updated for {sku}: {previous} -> {new} ({adjustment_type}, reason={reason or 'Not specified'})"
        )
        log_event(
            name="stock_updated",
            input_data={"product_code": sku, "quantity": quantity, "adjustment_type": adjustment_type},
            output_data={"previous_stock": previous, "new_stock": new},
            metadata={"reason": reason},
        )
        return change
