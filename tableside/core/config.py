"""Application configuration."""
from decimal import Decimal
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str

    # Restaurant defaults (used when a restaurant row has no override)
    restaurant_name: str = "Restaurant"
    default_tax_rate_percent: float = 0.0
    default_currency_symbol: str = "CHF"

    # Menu
    menu_file: Optional[str] = None

    # Cart storage (None keeps carts in process memory)
    cart_store_dir: Optional[str] = None

    # Order limits
    max_items_per_order: int = 20
    max_quantity_per_item: int = 10
    min_order_amount: Decimal = Decimal("5.00")
    max_order_amount: Decimal = Decimal("1000.00")
    default_estimated_time_minutes: int = 15

    # Kitchen board
    status_write_max_attempts: int = 3
    status_write_base_delay_seconds: float = 0.5
    status_write_max_delay_seconds: float = 4.0
    kitchen_clock_interval_seconds: float = 60.0

    # Live feed
    feed_queue_size: int = 256

    # Alerts
    alert_mute_key: str = "kitchen:alerts:muted"

    # Logging
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
