"""Unit tests for settings and store selection."""

import pytest
from pydantic import ValidationError as SettingsValidationError

from retail_order_core.config import Settings, get_stores
from retail_order_core.core import InventoryCore
from retail_order_core.state import MemoryOrderStore, MemoryProductStore, RedisOrderStore, RedisProductStore


class TestSettings:
    """Test settings loading and validation."""

    def test_defaults(self, settings):
        """Test default values."""
        assert settings.store_backend == "memory"
        assert settings.reorder_threshold == 20
        assert settings.high_urgency_max_stock == 5
        assert settings.forecast_lookback_days == 30
        assert settings.forecast_max_days == 60
        assert settings.order_number_prefix == "ORD"

    def test_environment_override(self, monkeypatch):
        """Test values are read from the environment."""
        monkeypatch.setenv("REORDER_THRESHOLD", "35")
        monkeypatch.setenv("ORDER_NUMBER_PREFIX", "web")

        settings = Settings(_env_file=None)

        assert settings.reorder_threshold == 35
        assert settings.order_number_prefix == "WEB"

    def test_prefix_cannot_contain_dash(self):
        """Test order number prefixes containing '-' are refused."""
        with pytest.raises(SettingsValidationError):
            Settings(_env_file=None, order_number_prefix="ORD-X")

    def test_langfuse_disabled_without_credentials(self):
        """Test tracing is switched off when keys are missing."""
        settings = Settings(_env_file=None, langfuse_enabled=True)

        settings.validate_observability()

        assert settings.langfuse_enabled is False


class TestStoreSelection:
    """Test backend selection."""

    def test_memory_backend(self, settings):
        """Test the memory backend builds in-memory stores."""
        product_store, order_store = get_stores(settings)

        assert isinstance(product_store, MemoryProductStore)
        assert isinstance(order_store, MemoryOrderStore)

    def test_redis_backend(self):
        """Test the redis backend builds Redis stores without connecting."""
        settings = Settings(_env_file=None, store_backend="redis", redis_key_prefix="shop:")

        product_store, order_store = get_stores(settings)

        assert isinstance(product_store, RedisProductStore)
        assert isinstance(order_store, RedisOrderStore)

    def test_core_from_settings(self):
        """Test the core is wired from settings."""
        core = InventoryCore.from_settings(Settings(_env_file=None, order_number_prefix="web", reorder_threshold=7))

        assert core.factory.prefix == "WEB"
        assert core.advisor.default_threshold == 7
        assert isinstance(core.product_store, MemoryProductStore)
