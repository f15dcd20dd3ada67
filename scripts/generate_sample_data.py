#!/usr/bin/env python3
"""Generate sample catalog and order history for the retail order core."""

import json
import logging
from collections import Counter
from pathlib import Path

from retail_order_core.config import get_settings
from retail_order_core.data import SampleDataGenerator
from retail_order_core.data.models import Order, Product

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"


def generate_and_save_sample_data(
    count: int | None = None,
    days: int | None = None,
    save_to_disk: bool = True,
    data_dir: Path | None = None,
) -> tuple[list[Product], list[Order]]:
    """
    Generate sample products and order history.

    Args:
        count: Number of products to generate (defaults to settings.sample_data_products_count)
        days: Days of order history (defaults to settings.sample_data_history_days)
        save_to_disk: Whether to save JSON files to disk (default: True)
        data_dir: Directory to save files (defaults to project root/data/)

    Returns:
        Tuple of (products, orders)

    Raises:
        OSError: If save_to_disk=True and file writing fails
    """
    settings = get_settings()

    if count is None:
        count = settings.sample_data_products_count
    if days is None:
        days = settings.sample_data_history_days
    if data_dir is None:
        data_dir = DEFAULT_DATA_DIR

    logger.info("Initializing sample data generator...")
    generator = SampleDataGenerator(seed=42)

    logger.info(f"Generating {count} products...")
    products = generator.generate_products(count=count)

    logger.info(f"Generating order history for {days} days...")
    orders = generator.generate_order_history(products=products, days=days)
    logger.info(f"Generated {len(orders)} orders")

    if save_to_disk:
        data_dir.mkdir(exist_ok=True)
        for filename, records in (("products.json", products), ("orders.json", orders)):
            path = data_dir / filename
            logger.info(f"Saving {len(records)} records to {path}...")
            try:
                with open(path, "w") as f:
                    json.dump([r.model_dump(mode="json") for r in records], f, indent=2)
            except OSError as e:
                logger.error(f"Failed to save {filename}: {e}")
                raise

    return products, orders


def main():
    """Generate and save sample data with summary output."""
    try:
        products, orders = generate_and_save_sample_data()
    except Exception as e:
        logger.error(f"Failed to generate sample data: {e}", exc_info=True)
        raise

    print("\n" + "=" * 60)
    print("SAMPLE DATA GENERATION SUMMARY")
    print("=" * 60)
    print(f"Total Products: {len(products)}")
    print(f"Total Orders: {len(orders)}")

    print("\nProducts by Category:")
    for category, count in sorted(Counter(p.category for p in products).items()):
        print(f"  {category}: {count}")

    print("\nStock Distribution:")
    print(f"  Out of Stock: {sum(1 for p in products if p.stock_quantity == 0)}")
    print(f"  Low Stock: {sum(1 for p in products if 0 < p.stock_quantity <= 20)}")
    print(f"  Normal Stock: {sum(1 for p in products if p.stock_quantity > 20)}")

    print("\nOrders by Status:")
    for status, count in sorted(Counter(o.status.value for o in orders).items()):
        print(f"  {status}: {count}")

    print("\nFiles saved:")
    print(f"  {DEFAULT_DATA_DIR / 'products.json'}")
    print(f"  {DEFAULT_DATA_DIR / 'orders.json'}")
    print("=" * 60)


if __name__ == "__main__":
    main()
