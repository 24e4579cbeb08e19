"""pricesync configuration management.

Loads configuration from environment variables with sensible defaults.
Remote credentials and page sizes are explicit values handed to each
page source at construction; nothing below the CLI reads the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

DEFAULT_REGULAR_PRICE_TYPE_ID = "605e52e7-e822-11ed-80e4-000c29409daa"
DEFAULT_SALE_PRICE_TYPE_ID = "f64e3772-4b14-11ee-80eb-000c29409daa"


@dataclass
class SourceConfig:
    """Remote catalog/pricing API connection settings."""

    base_url: str
    auth_token: str
    items_page_size: int = 500
    pricing_page_size: int = 100
    batch_size: int = 5  # Concurrent pages per batch
    request_timeout: float = 30.0  # Seconds, per request
    verify_ssl: bool = True


@dataclass
class PricingConfig:
    """Price canonicalization and business-rule settings."""

    price_decimals: int = 2
    sale_floor: Decimal = Decimal("0.10")
    regular_price_type_id: str = DEFAULT_REGULAR_PRICE_TYPE_ID
    sale_price_type_id: str = DEFAULT_SALE_PRICE_TYPE_ID

    @classmethod
    def from_env(cls) -> PricingConfig:
        return cls(
            price_decimals=int(os.getenv("PRICE_DECIMALS", "2")),
            sale_floor=Decimal(os.getenv("SALE_PRICE_FLOOR", "0.10")),
            regular_price_type_id=os.getenv(
                "REGULAR_PRICE_TYPE_ID", DEFAULT_REGULAR_PRICE_TYPE_ID
            ),
            sale_price_type_id=os.getenv("SALE_PRICE_TYPE_ID", DEFAULT_SALE_PRICE_TYPE_ID),
        )


@dataclass
class CatalogConfig:
    """Target catalog write settings."""

    sale_category_slug: str = "on-sale"
    sale_category_name: str = "On Sale"
    new_product_status: str = "draft"

    @classmethod
    def from_env(cls) -> CatalogConfig:
        return cls(
            sale_category_slug=os.getenv("SALE_CATEGORY_SLUG", "on-sale"),
            sale_category_name=os.getenv("SALE_CATEGORY_NAME", "On Sale"),
            new_product_status=os.getenv("NEW_PRODUCT_STATUS", "draft"),
        )


@dataclass
class AppConfig:
    """Root application configuration.

    Loads from environment variables with fail-fast on missing required values.
    """

    source: SourceConfig
    log_level: str = "INFO"
    json_logs: bool = False

    pricing: PricingConfig = field(default_factory=PricingConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables.

        Required environment variables:
        - SYNC_API_BASE_URL: Base URL of the remote exchange API
        - SYNC_API_AUTH_TOKEN: Value sent in the Authorization header

        Raises:
            KeyError: If required environment variables are missing
        """
        base_url = os.environ.get("SYNC_API_BASE_URL")
        if not base_url:
            raise KeyError(
                "SYNC_API_BASE_URL environment variable is required. "
                "Example: https://example.com/hs/Exchange"
            )

        auth_token = os.environ.get("SYNC_API_AUTH_TOKEN")
        if not auth_token:
            raise KeyError("SYNC_API_AUTH_TOKEN environment variable is required.")

        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            json_logs=os.getenv("JSON_LOGS", "false").lower() == "true",
            source=SourceConfig(
                base_url=base_url.rstrip("/"),
                auth_token=auth_token,
                items_page_size=int(os.getenv("SYNC_ITEMS_PAGE_SIZE", "500")),
                pricing_page_size=int(os.getenv("SYNC_PRICING_PAGE_SIZE", "100")),
                batch_size=int(os.getenv("SYNC_BATCH_SIZE", "5")),
                request_timeout=float(os.getenv("SYNC_REQUEST_TIMEOUT", "30.0")),
                verify_ssl=os.getenv("SYNC_VERIFY_SSL", "true").lower() == "true",
            ),
            pricing=PricingConfig.from_env(),
            catalog=CatalogConfig.from_env(),
        )

    @property
    def config_root(self) -> Path:
        """Root directory for configuration files."""
        return Path(__file__).parent.parent / "config"

    @property
    def sources_config_path(self) -> Path:
        """Path to sync_sources.yaml."""
        return self.config_root / "sync_sources.yaml"


# Singleton instance (lazy-loaded)
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create singleton AppConfig instance from environment.

    Raises:
        KeyError: If required environment variables are missing
    """
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the cached singleton (used by tests and the CLI)."""
    global _config
    _config = None
