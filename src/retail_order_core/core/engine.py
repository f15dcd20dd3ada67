"""Core container wiring stores into the order and inventory components."""

import logging
from collections.abc import Callable
from datetime import datetime

from retail_order_core.config.settings import Settings, get_settings
from retail_order_core.core.catalog import Catalog
from retail_order_core.core.demand_forecaster import DemandForecaster
from retail_order_core.core.order_factory import OrderFactory
from retail_order_core.core.order_state_machine import OrderStateMachine
from retail_order_core.core.reorder_advisor import ReorderAdvisor, ReorderPolicy, refill_to_double_threshold
from retail_order_core.core.stock_ledger import StockLedger
from retail_order_core.data.models import utcnow
from retail_order_core.state.stores import KeyedLocks, OrderStore, ProductStore

logger = logging.getLogger(__name__)


class InventoryCore:
    """
    The order-and-inventory core.

    Receives its stores at construction; nothing here reaches for a
    process-wide client. Tests build one per case over in-memory stores.
    """

    def __init__(
        self,
        product_store: ProductStore,
        order_store: OrderStore,
        settings: Settings | None = None,
        reorder_policy: ReorderPolicy = refill_to_double_threshold,
        clock: Callable[[], datetime] = utcnow,
    ):
        settings = settings or get_settings()
        timeout = settings.store_timeout_seconds

        self.settings = settings
        self.product_store = product_store
        self.order_store = order_store

        self.ledger = StockLedger(product_store, timeout=timeout, clock=clock)
        self.product_guard = KeyedLocks()
        self.advisor = ReorderAdvisor(
            product_store,
            default_threshold=settings.reorder_threshold,
            high_urgency_max_stock=settings.high_urgency_max_stock,
            policy=reorder_policy,
            timeout=timeout,
        )
        self.forecaster = DemandForecaster(
            product_store,
            order_store,
            default_lookback_days=settings.forecast_lookback_days,
            default_max_days=settings.forecast_max_days,
            timeout=timeout,
            clock=clock,
        )
        self.state_machine = OrderStateMachine(order_store, self.ledger, timeout=timeout, clock=clock)
        self.factory = OrderFactory(
            product_store,
            order_store,
            self.ledger,
            order_number_prefix=settings.order_number_prefix,
            timeout=timeout,
            clock=clock,
            product_guard=self.product_guard,
        )
        self.catalog = Catalog(
            product_store,
            order_store,
            low_stock_ceiling=settings.low_stock_ceiling,
            timeout=timeout,
            clock=clock,
            product_guard=self.product_guard,
        )
        logger.info(f"Initialized inventory core ({type(product_store).__name__}, {type(order_store).__name__})")

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "InventoryCore":
        """Build a core over the stores selected by settings.store_backend."""
        from retail_order_core.config.deployment import get_stores

        settings = settings or get_settings()
        product_store, order_store = get_stores(settings)
        return cls(product_store, order_store, settings=settings)
