"""Application settings using Pydantic Settings."""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Store configuration
    store_backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Product/order store backend: memory or redis",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (redis backend)",
    )
    redis_key_prefix: str = Field(
        default="retail:",
        description="Prefix applied to every Redis key",
    )
    store_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Upper bound for a single store call before it is reported as transient",
    )

    # Reorder advisor
    reorder_threshold: int = Field(
        default=20,
        ge=0,
        description="Default stock threshold for reorder checks",
    )
    high_urgency_max_stock: int = Field(
        default=5,
        ge=0,
        description="Stock at or below this (but above zero) is HIGH urgency",
    )
    low_stock_ceiling: int = Field(
        default=20,
        ge=0,
        description="Stock at or below this counts as low in stock summaries",
    )

    # Demand forecaster
    forecast_lookback_days: int = Field(
        default=30,
        gt=0,
        description="Number of past days used to compute sales velocity",
    )
    forecast_max_days: int = Field(
        default=60,
        ge=0,
        description="Only report products running out within this many days",
    )

    # Orders
    order_number_prefix: str = Field(
        default="ORD",
        description="Prefix of generated order numbers",
    )
    order_list_limit: int = Field(
        default=50,
        gt=0,
        description="Default page size when listing orders",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level",
    )

    # LangFuse observability configuration
    langfuse_enabled: bool = Field(
        default=False,
        description="Enable LangFuse tracing",
    )
    langfuse_public_key: str | None = Field(
        default=None,
        description="LangFuse public key",
    )
    langfuse_secret_key: str | None = Field(
        default=None,
        description="LangFuse secret key",
    )
    langfuse_host: str = Field(
        default="https://cloud.langfuse.com",
        description="LangFuse host URL",
    )

    # Sample data configuration
    sample_data_products_count: int = Field(
        default=200,
        description="Number of sample products to generate",
    )
    sample_data_history_days: int = Field(
        default=90,
        description="Number of days of order history to generate",
    )

    @field_validator("order_number_prefix")
    @classmethod
    def validate_order_prefix(cls, v: str) -> str:
        """Order numbers are split on '-', so the prefix cannot contain one."""
        if not v or "-" in v:
            raise ValueError(f"Invalid order number prefix: {v!r}")
        return v.upper()

    def validate_observability(self) -> None:
        """Disable tracing when credentials are missing."""
        if self.langfuse_enabled:
            if not self.langfuse_public_key or not self.langfuse_secret_key:
                logger.warning("LangFuse is enabled but credentials are missing. Disabling LangFuse tracing.")
                self.langfuse_enabled = False

        if self.high_urgency_max_stock > self.reorder_threshold:
            logger.warning(
                f"high_urgency_max_stock ({self.high_urgency_max_stock}) exceeds the default "
                f"reorder threshold ({self.reorder_threshold}); MEDIUM tier will be empty"
            )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    settings.validate_observability()
    return settings
