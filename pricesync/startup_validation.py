"""Startup validation for pricesync.

Validates configuration before any request is sent, so a bad base URL or
an empty token fails fast instead of surfacing as a transport error
halfway through pagination.
"""

from __future__ import annotations

import logging
from urllib.parse import urlparse

from pricesync.config import AppConfig
from pricesync.models import SALE_PRICE_FLOOR

logger = logging.getLogger(__name__)


class StartupValidationError(Exception):
    """Raised when startup validation fails."""
    pass


def validate_source_config(config: AppConfig) -> None:
    """Validate remote source settings.

    Raises:
        StartupValidationError: If URL, token or sizing values are invalid
    """
    source = config.source

    parsed = urlparse(source.base_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise StartupValidationError(
            f"SYNC_API_BASE_URL must be an http(s) URL, got {source.base_url!r}"
        )

    if not source.auth_token.strip():
        raise StartupValidationError("SYNC_API_AUTH_TOKEN must not be empty")

    for name, value in (
        ("SYNC_BATCH_SIZE", source.batch_size),
        ("SYNC_ITEMS_PAGE_SIZE", source.items_page_size),
        ("SYNC_PRICING_PAGE_SIZE", source.pricing_page_size),
    ):
        if value < 1:
            raise StartupValidationError(f"{name} must be >= 1, got {value}")

    if source.request_timeout <= 0:
        raise StartupValidationError(
            f"SYNC_REQUEST_TIMEOUT must be positive, got {source.request_timeout}"
        )

    if not source.verify_ssl:
        logger.warning("TLS verification is disabled for the remote source")

    logger.info("✓ Source configuration OK")


def validate_pricing_config(config: AppConfig) -> None:
    """Validate price rule settings.

    Raises:
        StartupValidationError: If price types collide or precision is invalid
    """
    pricing = config.pricing

    if pricing.regular_price_type_id == pricing.sale_price_type_id:
        raise StartupValidationError(
            "REGULAR_PRICE_TYPE_ID and SALE_PRICE_TYPE_ID must differ"
        )

    if not 0 <= pricing.price_decimals <= 6:
        raise StartupValidationError(
            f"PRICE_DECIMALS must be between 0 and 6, got {pricing.price_decimals}"
        )

    if pricing.sale_floor < SALE_PRICE_FLOOR:
        raise StartupValidationError(
            f"SALE_PRICE_FLOOR must be >= {SALE_PRICE_FLOOR}, got {pricing.sale_floor}"
        )

    logger.info("✓ Pricing configuration OK")


def validate_startup(config: AppConfig) -> None:
    """Run all startup validations.

    Raises:
        StartupValidationError: On the first failed check
    """
    logger.info("Running startup validation...")
    validate_source_config(config)
    validate_pricing_config(config)
    logger.info("✓ Startup validation passed")
