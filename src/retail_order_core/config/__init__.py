"""Configuration for the order-and-inventory core."""

from .deployment import configure_logging, get_stores
from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings", "get_stores", "configure_logging"]
