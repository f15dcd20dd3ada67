"""Data models and sample data generation."""

from .models import Order, OrderItem, OrderStatus, Product, StatusChange
from .sample_generator import SampleDataGenerator

__all__ = ["Product", "Order", "OrderItem", "OrderStatus", "StatusChange", "SampleDataGenerator"]
