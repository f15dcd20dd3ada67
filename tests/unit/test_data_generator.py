"""Unit tests for sample data generator."""

from datetime import timedelta

from retail_order_core.core.order_state_machine import TRANSITIONS
from retail_order_core.data import Order, OrderStatus, Product, SampleDataGenerator


class TestSampleDataGenerator:
    """Test the SampleDataGenerator class."""

    def test_generator_initialization(self):
        """Test generator initialization with seed."""
        gen = SampleDataGenerator(seed=42)
        assert gen.fake is not None

    def test_generate_products_count(self):
        """Test generating the correct number of products."""
        gen = SampleDataGenerator(seed=42)
        products = gen.generate_products(count=100)

        assert len(products) == 100
        assert all(isinstance(p, Product) for p in products)

    def test_generate_products_unique_skus(self):
        """Test that all generated products have unique SKUs."""
        gen = SampleDataGenerator(seed=42)
        products = gen.generate_products(count=100)

        skus = [p.sku for p in products]
        assert len(skus) == len(set(skus)), "Duplicate SKUs found"

    def test_generate_products_valid_categories(self):
        """Test that all products have valid categories and prices."""
        gen = SampleDataGenerator(seed=42)
        products = gen.generate_products(count=100)

        for product in products:
            assert product.category in gen.CATEGORIES
            assert product.price > 0
            assert product.stock_quantity >= 0

    def test_reproducible(self):
        """Test the same seed yields the same catalog."""
        first = SampleDataGenerator(seed=7).generate_products(count=20)
        second = SampleDataGenerator(seed=7).generate_products(count=20)

        assert [(p.sku, p.price, p.stock_quantity) for p in first] == [
            (p.sku, p.price, p.stock_quantity) for p in second
        ]


class TestOrderHistory:
    """Test generated order history."""

    def test_orders_follow_the_lifecycle(self, now):
        """Test every generated history is a legal path ending at the order status."""
        gen = SampleDataGenerator(seed=42)
        products = gen.generate_products(count=30)
        orders = gen.generate_order_history(products, days=30, now=now)

        assert orders
        for order in orders:
            assert isinstance(order, Order)
            history = order.status_history
            assert history[0].from_status is None
            assert history[0].to_status == OrderStatus.PENDING
            assert history[-1].to_status == order.status
            for change in history[1:]:
                assert change.to_status in TRANSITIONS[change.from_status]
            stamps = [h.changed_at for h in history]
            assert stamps == sorted(stamps)
            assert (order.delivered_at is not None) == (order.status == OrderStatus.DELIVERED)

    def test_orders_within_window(self, now):
        """Test orders fall inside the requested window with unique numbers."""
        gen = SampleDataGenerator(seed=42)
        products = gen.generate_products(count=30)
        orders = gen.generate_order_history(products, days=10, now=now)

        assert all(now - timedelta(days=10) <= o.created_at < now for o in orders)
        numbers = [o.order_number for o in orders]
        assert len(numbers) == len(set(numbers))
        assert all(n.startswith("ORD-2024-") for n in numbers)

    def test_totals_match_lines(self, now):
        """Test order totals equal the sum of line subtotals."""
        gen = SampleDataGenerator(seed=42)
        orders = gen.generate_order_history(gen.generate_products(count=10), days=5, now=now)

        for order in orders:
            assert order.total_amount == sum(item.subtotal for item in order.items)
