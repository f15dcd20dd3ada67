"""Pydantic models for products, orders and core results."""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator

CENTS = Decimal("0.01")


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def to_money(value: Decimal | float | int | str) -> Decimal:
    """Round a monetary amount to 2 decimal places (half-up)."""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


class OrderStatus(str, Enum):
    """Order lifecycle status."""

    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Urgency(str, Enum):
    """Restock priority tier."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"


class RiskLevel(str, Enum):
    """Stockout risk tier."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Product(BaseModel):
    """Product catalog model."""

    sku: str = Field(..., min_length=1, description="Product code (unique identifier)")
    name: str = Field(..., description="Product name")
    category: str = Field(default="general", description="Product category")
    price: Decimal = Field(ge=0, description="Unit price (non-negative)")
    stock_quantity: int = Field(ge=0, description="Quantity on hand")
    supplier: str | None = Field(default=None, description="Supplier name")
    is_active: bool = Field(default=True, description="False once soft deleted")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: datetime | None = Field(default=None)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "sku": "INT-LAV-001",
                    "name": "Interior Lavender Matte 5L",
                    "category": "interior",
                    "price": "42.50",
                    "stock_quantity": 45,
                    "supplier": "Colorificio Rossi",
                }
            ]
        }
    }


class OrderItem(BaseModel):
    """Accepted order line with its price snapshot."""

    sku: str
    product_name: str
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(ge=0, description="Unit price captured at reservation time")

    @property
    def subtotal(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


class StatusChange(BaseModel):
    """One entry of an order's status history."""

    from_status: OrderStatus | None = None
    to_status: OrderStatus
    changed_at: datetime
    notes: str | None = None


class Order(BaseModel):
    """Customer order."""

    order_number: str = Field(..., description="Human-readable order number, e.g. ORD-2024-0001")
    customer_id: str
    items: list[OrderItem] = Field(min_length=1)
    total_amount: Decimal = Field(ge=0)
    status: OrderStatus = OrderStatus.PENDING
    status_history: list[StatusChange] = Field(default_factory=list)
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    delivered_at: datetime | None = None

    def quantity_of(self, sku: str) -> int:
        return sum(item.quantity for item in self.items if item.sku == sku)


# Boundary request contracts


class OrderLineRequest(BaseModel):
    """One requested order line."""

    product_code: str = Field(..., min_length=1, description="Product code")
    quantity: int = Field(gt=0, description="Quantity to order (must be positive)")


class CreateOrderRequest(BaseModel):
    """Model for creating a customer order."""

    customer_id: str = Field(..., min_length=1, description="Customer placing the order")
    items: list[OrderLineRequest] = Field(..., min_length=1, description="Requested lines")
    notes: str | None = Field(default=None, description="Optional order notes")


class StatusUpdateRequest(BaseModel):
    """Model for an order status change."""

    order_number: str = Field(..., min_length=1)
    new_status: OrderStatus
    notes: str | None = None


class StockUpdateRequest(BaseModel):
    """Model for a manual stock adjustment."""

    product_code: str = Field(..., min_length=1)
    quantity: int = Field(ge=0, description="New absolute quantity or adjustment amount")
    adjustment_type: Literal["set", "add", "subtract"] = "set"
    reason: str | None = None


class ReorderQuery(BaseModel):
    """Model for reorder check parameters."""

    threshold: int | None = Field(default=None, ge=0, description="Low stock threshold")
    category: str | None = None
    include_out_of_stock: bool = True


class ForecastQuery(BaseModel):
    """Model for stockout forecast parameters."""

    days_lookback: int | None = Field(default=None, gt=0)
    max_days_until_stockout: int | None = Field(default=None, ge=0)
    category: str | None = None


# Core results


class StockChange(BaseModel):
    """Outcome of a stock mutation."""

    sku: str
    previous_stock: int
    new_stock: int
    adjustment_type: str
    reason: str | None = None
    updated_at: datetime

    @property
    def change(self) -> int:
        return self.new_stock - self.previous_stock


class ReorderCandidate(BaseModel):
    sku: str
    name: str
    category: str
    current_stock: int
    unit_price: Decimal
    supplier: str | None = None
    urgency: Urgency


class ReorderReport(BaseModel):
    """Low stock products with the estimated cost of restocking them."""

    threshold_used: int
    category_filter: str | None = None
    urgency_summary: dict[str, int]
    estimated_reorder_value: Decimal
    products: list[ReorderCandidate]


class StockoutPrediction(BaseModel):
    sku: str
    name: str
    category: str
    current_stock: int
    daily_velocity: float
    days_until_stockout: int
    estimated_stockout_date: datetime
    risk_level: RiskLevel


class StockoutForecast(BaseModel):
    analysis_period_days: int
    max_days_forecast: int
    category_filter: str | None = None
    risk_summary: dict[str, int]
    predictions: list[StockoutPrediction]


class ProductSales(BaseModel):
    sku: str
    name: str | None = None
    total_quantity_sold: int
    total_revenue: Decimal
    number_of_orders: int

    @property
    def average_quantity_per_order(self) -> float:
        if not self.number_of_orders:
            return 0.0
        return round(self.total_quantity_sold / self.number_of_orders, 2)


class LineFailure(BaseModel):
    """A requested line that was excluded from the order."""

    product_code: str
    quantity: int
    error: str
    message: str


class OrderCreationResult(BaseModel):
    """Order created (possibly with warnings) or a full failure."""

    success: bool
    order: Order | None = None
    failures: list[LineFailure] = Field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        return [f.message for f in self.failures]


class TransitionResult(BaseModel):
    order_number: str
    previous_status: OrderStatus
    new_status: OrderStatus
    changed_at: datetime
    delivered_at: datetime | None = None
    stock_restored: bool = False
    released: dict[str, int] = Field(default_factory=dict)
    notes: str | None = None


class StockSummaryGroup(BaseModel):
    name: str
    products: int
    units_in_stock: int
    stock_value: Decimal
    avg_stock_per_product: int
    min_stock: int
    max_stock: int
    out_of_stock_count: int
    low_stock_count: int
    health: Literal["CRITICAL", "WARNING", "HEALTHY"]


class StockSummary(BaseModel):
    grouped_by: str
    total_products: int
    total_units: int
    total_value: Decimal
    out_of_stock: int
    low_stock: int
    groups: list[StockSummaryGroup]

    @field_validator("total_value")
    @classmethod
    def round_total_value(cls, v: Decimal) -> Decimal:
        return to_money(v)
