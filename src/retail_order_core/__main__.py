"""Main entry point for the retail order core MCP server."""

import argparse
import asyncio
import logging

from retail_order_core.config import configure_logging, get_settings
from retail_order_core.core import InventoryCore
from retail_order_core.data import SampleDataGenerator
from retail_order_core.observability import flush_langfuse
from retail_order_core.state import MemoryOrderStore, MemoryProductStore
from retail_order_core.tools import create_mcp_server

logger = logging.getLogger(__name__)


def build_core(sample_data: bool = False, seed: int = 42) -> InventoryCore:
    """
    Build the core from settings.

    Args:
        sample_data: Seed in-memory stores with generated products and order history
        seed: Random seed for the sample data generator

    Returns:
        InventoryCore instance
    """
    settings = get_settings()
    if not sample_data:
        return InventoryCore.from_settings(settings)

    if settings.store_backend != "memory":
        logger.warning(f"Sample data is only loaded into memory stores; ignoring for {settings.store_backend}")
        return InventoryCore.from_settings(settings)

    generator = SampleDataGenerator(seed=seed)
    products = generator.generate_products(count=settings.sample_data_products_count)
    orders = generator.generate_order_history(products, days=settings.sample_data_history_days)
    logger.info(f"Seeded {len(products)} products and {len(orders)} orders")
    return InventoryCore(MemoryProductStore(products), MemoryOrderStore(orders), settings=settings)


async def serve(core: InventoryCore, transport: str) -> None:
    mcp = create_mcp_server(core)
    try:
        await mcp.run_async(transport=transport)
    finally:
        flush_langfuse()


def main():
    """Launch the MCP server."""
    parser = argparse.ArgumentParser(description="Retail order and inventory MCP server")
    parser.add_argument("--sample-data", action="store_true", help="Seed memory stores with generated data")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for sample data (default: 42)")
    parser.add_argument(
        "--transport",
        choices=["stdio", "http", "sse"],
        default="stdio",
        help="MCP transport (default: stdio)",
    )
    args = parser.parse_args()

    configure_logging()
    core = build_core(sample_data=args.sample_data, seed=args.seed)
    logger.info(f"Starting MCP server over {args.transport}")
    asyncio.run(serve(core, args.transport))


if __name__ == "__main__":
    main()
