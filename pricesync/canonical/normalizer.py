"""Build canonical Product maps from source feeds and target records."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from pydantic import ValidationError

from pricesync.canonical.canonicalizer import DEFAULT_PRICE_DECIMALS, canonicalize_name
from pricesync.canonical.price_rules import normalize_price_pair
from pricesync.canonical.timeline import latest_price_by_item
from pricesync.models import (
    SALE_PRICE_FLOOR,
    ExternalProduct,
    PriceType,
    Product,
    RawItem,
    RawPricingDocument,
)

logger = logging.getLogger(__name__)


class ProductNormalizer:
    """Compose canonicalization, price rules and timeline resolution.

    Both sides of a comparison go through the same instance so source and
    target products share one canonical form.

    Usage:
        normalizer = ProductNormalizer()
        source_map = normalizer.normalize(items, pricing_documents)
        target_map = normalizer.normalize_external_products(catalog_records)
    """

    def __init__(
        self,
        price_decimals: int = DEFAULT_PRICE_DECIMALS,
        sale_floor: Decimal = SALE_PRICE_FLOOR,
    ):
        self.price_decimals = price_decimals
        self.sale_floor = sale_floor

    def _price_pair(self, regular, sale) -> tuple[str | None, str | None]:
        return normalize_price_pair(
            regular, sale, decimals=self.price_decimals, sale_floor=self.sale_floor
        )

    def normalize(
        self,
        items: Iterable[RawItem],
        pricing_documents: Iterable[RawPricingDocument],
    ) -> dict[str, Product]:
        """Normalize remote items and pricing documents into a ProductMap.

        Items without an identity or business key are skipped, as are items
        that end up with no price. A later item with the same business key
        replaces an earlier one.

        Args:
            items: Raw catalog items
            pricing_documents: Raw pricing documents (REGULAR and SALE)

        Returns:
            Dict of business key -> Product, in feed order
        """
        documents = list(pricing_documents)
        regular_prices = latest_price_by_item(documents, PriceType.REGULAR)
        sale_prices = latest_price_by_item(documents, PriceType.SALE)

        products: dict[str, Product] = {}
        skipped_keys = 0
        skipped_prices = 0

        for item in items:
            if not item.identity or not item.business_key:
                skipped_keys += 1
                logger.debug(f"Skipping item without identity/business key: {item!r}")
                continue

            price, sales_price = self._price_pair(
                regular_prices.get(item.identity), sale_prices.get(item.identity)
            )
            if price is None and sales_price is None:
                skipped_prices += 1
                continue

            products[item.business_key] = Product(
                full_name=canonicalize_name(item.display_name),
                business_key=item.business_key,
                price=price,
                sales_price=sales_price,
            )

        logger.info(
            f"Normalization complete. Products with prices: {len(products)} "
            f"({skipped_keys} without key, {skipped_prices} without price)"
        )
        return products

    def normalize_external_product(
        self, record: ExternalProduct | Mapping[str, Any]
    ) -> Product | None:
        """Convert one target catalog record to a canonical Product.

        Args:
            record: ExternalProduct or a native record dict

        Returns:
            Product, or None if the record has no business key or no price
        """
        if not isinstance(record, ExternalProduct):
            try:
                record = ExternalProduct.model_validate(record)
            except ValidationError as e:
                logger.warning(f"Skipping malformed catalog record: {e}")
                return None

        if not record.business_key:
            return None

        price, sales_price = self._price_pair(record.regular_price, record.sale_price)
        if price is None and sales_price is None:
            return None

        return Product(
            full_name=canonicalize_name(record.name),
            business_key=record.business_key,
            price=price,
            sales_price=sales_price,
        )

    def normalize_external_products(
        self, records: Iterable[ExternalProduct | Mapping[str, Any]]
    ) -> dict[str, Product]:
        """Normalize a bulk read of the target catalog into a ProductMap."""
        products: dict[str, Product] = {}
        for record in records:
            product = self.normalize_external_product(record)
            if product is not None:
                products[product.business_key] = product

        logger.info(f"Catalog normalization complete. Products with prices: {len(products)}")
        return products
