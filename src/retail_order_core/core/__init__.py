"""Order-and-inventory consistency core."""

from retail_order_core.core.catalog import Catalog
from retail_order_core.core.demand_forecaster import DemandForecaster, risk_level_for
from retail_order_core.core.engine import InventoryCore
from retail_order_core.core.order_factory import OrderFactory
from retail_order_core.core.order_state_machine import TRANSITIONS, OrderStateMachine, allowed_transitions
from retail_order_core.core.reorder_advisor import ReorderAdvisor, refill_to_double_threshold, urgency_for
from retail_order_core.core.stock_ledger import StockLedger

__all__ = [
    "InventoryCore",
    "StockLedger",
    "ReorderAdvisor",
    "DemandForecaster",
    "OrderStateMachine",
    "OrderFactory",
    "Catalog",
    "TRANSITIONS",
    "allowed_transitions",
    "refill_to_double_threshold",
    "urgency_for",
    "risk_level_for",
]
