"""Shared fixtures for retail order core tests."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from retail_order_core.config.settings import Settings
from retail_order_core.core import InventoryCore
from retail_order_core.data.models import Order, OrderItem, OrderStatus, Product, StatusChange
from retail_order_core.state import MemoryOrderStore, MemoryProductStore

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed reference time used as the core's clock."""
    return NOW


@pytest.fixture
def settings():
    """Default settings, ignoring any local .env file."""
    return Settings(_env_file=None, store_backend="memory", langfuse_enabled=False)


@pytest.fixture
def make_product():
    """Factory for catalog products."""

    def _make(sku, stock, price="10.00", category="interior", supplier="Colorificio Rossi", **extra):
        return Product(
            sku=sku,
            name=extra.pop("name", f"Product {sku}"),
            category=category,
            price=Decimal(price),
            stock_quantity=stock,
            supplier=supplier,
            created_at=NOW,
            updated_at=NOW,
            **extra,
        )

    return _make


@pytest.fixture
def make_order():
    """Factory for stored orders. Lines are (sku, quantity, unit_price)."""

    def _make(order_number, lines, status=OrderStatus.PENDING, created_at=NOW, customer_id="CUST-1000"):
        items = [
            OrderItem(sku=sku, product_name=f"Product {sku}", quantity=qty, unit_price=Decimal(price))
            for sku, qty, price in lines
        ]
        return Order(
            order_number=order_number,
            customer_id=customer_id,
            items=items,
            total_amount=sum((item.subtotal for item in items), Decimal("0.00")),
            status=status,
            status_history=[StatusChange(from_status=None, to_status=status, changed_at=created_at)],
            created_at=created_at,
            updated_at=created_at,
        )

    return _make


@pytest.fixture
def make_core(settings, now):
    """Factory for an InventoryCore over fresh in-memory stores."""

    def _make(products=(), orders=(), clock=None, **kwargs):
        return InventoryCore(
            MemoryProductStore(products),
            MemoryOrderStore(orders),
            settings=settings,
            clock=clock or (lambda: now),
            **kwargs,
        )

    return _make
