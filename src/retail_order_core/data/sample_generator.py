"""Sample data generator for products and order history."""

import random
from datetime import datetime, timedelta
from decimal import Decimal

from faker import Faker

from .models import Order, OrderItem, OrderStatus, Product, StatusChange, to_money, utcnow


class SampleDataGenerator:
    """Generate realistic sample catalog and order data."""

    CATEGORIES = [
        "interior",
        "exterior",
        "industrial",
        "primers",
        "tools",
        "accessories",
    ]

    PRODUCT_TEMPLATES = {
        "interior": ["Matte Wall Paint", "Satin Emulsion", "Ceiling White", "Washable Eggshell", "Kitchen & Bath"],
        "exterior": ["Masonry Paint", "Weatherproof Gloss", "Fence Stain", "Deck Oil", "Roof Coating"],
        "industrial": ["Epoxy Floor Coat", "Anti-Rust Enamel", "Road Marking", "Heat Resistant", "Zinc Primer"],
        "primers": ["Universal Primer", "Plaster Sealer", "Wood Primer", "Metal Primer", "Stain Blocker"],
        "tools": ["Roller Set", "Angled Brush", "Paint Tray", "Extension Pole", "Spray Gun"],
        "accessories": ["Masking Tape", "Drop Cloth", "Filler", "Sandpaper Pack", "Stir Sticks"],
    }

    COLORS = ["Lavender", "Ivory", "Sage", "Charcoal", "Ocean", "Terracotta", "Sand", "White"]

    PRICE_RANGES = {
        "interior": (18.0, 85.0),
        "exterior": (25.0, 120.0),
        "industrial": (40.0, 260.0),
        "primers": (12.0, 60.0),
        "tools": (4.0, 90.0),
        "accessories": (2.0, 25.0),
    }

    # Status mix by order age: (max_age_days, [(status, weight), ...])
    STATUS_BY_AGE = [
        (2, [(OrderStatus.PENDING, 0.6), (OrderStatus.PROCESSING, 0.3), (OrderStatus.CANCELLED, 0.1)]),
        (7, [(OrderStatus.PROCESSING, 0.4), (OrderStatus.SHIPPED, 0.45), (OrderStatus.CANCELLED, 0.15)]),
        (None, [(OrderStatus.DELIVERED, 0.85), (OrderStatus.SHIPPED, 0.05), (OrderStatus.CANCELLED, 0.10)]),
    ]

    PATHS = {
        OrderStatus.PENDING: [OrderStatus.PENDING],
        OrderStatus.PROCESSING: [OrderStatus.PENDING, OrderStatus.PROCESSING],
        OrderStatus.SHIPPED: [OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.SHIPPED],
        OrderStatus.DELIVERED: [
            OrderStatus.PENDING,
            OrderStatus.PROCESSING,
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
        ],
        OrderStatus.CANCELLED: [OrderStatus.PENDING, OrderStatus.CANCELLED],
    }

    def __init__(self, seed: int = 42):
        """
        Initialize the sample data generator.

        Args:
            seed: Random seed for reproducibility
        """
        self.fake = Faker()
        Faker.seed(seed)
        self.rng = random.Random(seed)

    def generate_products(self, count: int = 200) -> list[Product]:
        """
        Generate sample products across categories.

        Args:
            count: Number of products to generate

        Returns:
            List of Product instances
        """
        suppliers = [self.fake.company() for _ in range(8)]
        products = []

        for i in range(count):
            category = self.rng.choice(self.CATEGORIES)
            template = self.rng.choice(self.PRODUCT_TEMPLATES[category])
            color = self.rng.choice(self.COLORS)

            # Stock levels with a realistic spread
            roll = self.rng.random()
            if roll < 0.60:  # 60% normal stock
                stock = self.rng.randint(30, 200)
            elif roll < 0.85:  # 25% low stock
                stock = self.rng.randint(1, 20)
            elif roll < 0.95:  # 10% out of stock
                stock = 0
            else:  # 5% overstocked
                stock = self.rng.randint(201, 500)

            low, high = self.PRICE_RANGES[category]
            products.append(
                Product(
                    sku=f"{category[:3].upper()}-{color[:3].upper()}-{i + 1:03d}",
                    name=f"{template} ({color})",
                    category=category,
                    price=to_money(self.rng.uniform(low, high)),
                    stock_quantity=stock,
                    supplier=self.rng.choice(suppliers),
                )
            )

        return products

    def _pick_status(self, age_days: float) -> OrderStatus:
        for max_age, weights in self.STATUS_BY_AGE:
            if max_age is None or age_days <= max_age:
                statuses, probs = zip(*weights)
                return self.rng.choices(statuses, weights=probs, k=1)[0]
        return OrderStatus.DELIVERED

    def _history(self, final: OrderStatus, created_at: datetime, now: datetime) -> list[StatusChange]:
        path = self.PATHS[final]
        span = max((now - created_at).total_seconds(), 1.0)
        step = span / (len(path) + 1)
        history = []
        previous = None
        for i, status in enumerate(path):
            history.append(
                StatusChange(
                    from_status=previous,
                    to_status=status,
                    changed_at=created_at + timedelta(seconds=step * i),
                )
            )
            previous = status
        return history

    def generate_order_history(
        self,
        products: list[Product],
        days: int = 90,
        orders_per_day: tuple[int, int] = (3, 12),
        now: datetime | None = None,
    ) -> list[Order]:
        """
        Generate past customer orders with a status mix that depends on age.

        Recent orders are mostly pending or processing; older ones mostly
        delivered, with a share cancelled throughout.

        Args:
            products: Catalog to draw lines from
            days: Number of days of history
            orders_per_day: Inclusive range of orders per day
            now: Reference time (defaults to current UTC time)

        Returns:
            List of Order instances, oldest first
        """
        now = now or utcnow()
        start = now - timedelta(days=days)
        customers = [f"CUST-{self.rng.randint(1000, 9999)}" for _ in range(40)]
        sequences: dict[int, int] = {}
        orders = []

        for day_offset in range(days):
            day = start + timedelta(days=day_offset)
            for _ in range(self.rng.randint(*orders_per_day)):
                created_at = day + timedelta(seconds=self.rng.randint(9 * 3600, 20 * 3600))
                if created_at >= now:
                    continue

                lines = self.rng.sample(products, k=min(len(products), self.rng.randint(1, 3)))
                items = [
                    OrderItem(
                        sku=p.sku,
                        product_name=p.name,
                        quantity=self.rng.choice([1, 1, 1, 2, 2, 3, 5, 10]),
                        unit_price=p.price,
                    )
                    for p in lines
                ]

                status = self._pick_status((now - created_at).total_seconds() / 86400)
                history = self._history(status, created_at, now)
                sequences[created_at.year] = sequences.get(created_at.year, 0) + 1

                orders.append(
                    Order(
                        order_number=f"ORD-{created_at.year}-{sequences[created_at.year]:04d}",
                        customer_id=self.rng.choice(customers),
                        items=items,
                        total_amount=sum((item.subtotal for item in items), Decimal("0.00")),
                        status=status,
                        status_history=history,
                        created_at=created_at,
                        updated_at=history[-1].changed_at,
                        delivered_at=history[-1].changed_at if status == OrderStatus.DELIVERED else None,
                    )
                )

        return orders
