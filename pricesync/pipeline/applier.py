"""Apply a ChangeSet to the target catalog.

Updates are written first, then inserts, one upsert per product. The first
failed write stops the apply so the catalog never receives a partial,
out-of-order set of changes beyond that point.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from pricesync.canonical.canonicalizer import DEFAULT_PRICE_DECIMALS
from pricesync.canonical.price_rules import has_sale, normalize_price_pair
from pricesync.integration.target_catalog import TargetCatalog, TargetCatalogError
from pricesync.models import SALE_PRICE_FLOOR, Product
from pricesync.pipeline.types import ApplyResult, ChangeSet, UpsertRequest, UpsertResult

logger = logging.getLogger(__name__)


class ChangeApplier:
    """Write ChangeSet actions to a TargetCatalog."""

    def __init__(
        self,
        catalog: TargetCatalog,
        price_decimals: int = DEFAULT_PRICE_DECIMALS,
        sale_floor: Decimal = SALE_PRICE_FLOOR,
    ):
        """Initialize applier.

        Args:
            catalog: Target catalog receiving upserts
            price_decimals: Price precision for written values
            sale_floor: Minimum sale price for sale category membership
        """
        self.catalog = catalog
        self.price_decimals = price_decimals
        self.sale_floor = sale_floor
        self.stats = {
            "updated": 0,
            "inserted": 0,
        }

    def build_upsert_request(self, product: Product) -> UpsertRequest:
        """Translate a canonical product into a catalog write.

        Price rules are applied once more on the way out so the written pair
        always satisfies them, whatever built the Product.
        """
        regular, sale = normalize_price_pair(
            product.price,
            product.sales_price,
            decimals=self.price_decimals,
            sale_floor=self.sale_floor,
        )
        return UpsertRequest(
            business_key=product.business_key,
            full_name=product.full_name,
            regular_price=regular or "",
            sale_price=sale or "",
            on_sale=has_sale(sale, self.sale_floor),
        )

    async def _write(self, product: Product) -> UpsertResult:
        request = self.build_upsert_request(product)
        try:
            result = await self.catalog.upsert(request)
        except TargetCatalogError:
            raise
        except Exception as e:
            raise TargetCatalogError(product.business_key, str(e)) from e

        if not result.success:
            raise TargetCatalogError(product.business_key, result.message or "upsert rejected")

        return result

    async def apply(self, change_set: ChangeSet) -> ApplyResult:
        """Apply updates then inserts.

        Args:
            change_set: Actions to apply

        Returns:
            ApplyResult with counts and new identities of inserted products

        Raises:
            TargetCatalogError: On the first failed write (nothing after it
                is attempted)
        """
        apply_result = ApplyResult()

        for update in change_set.updates:
            await self._write(update.after)
            self.stats["updated"] += 1
            apply_result.updated += 1

        for product in change_set.inserts:
            result = await self._write(product)
            self.stats["inserted"] += 1
            apply_result.inserted += 1
            apply_result.created_ids[product.business_key] = result.product_id

        logger.info(
            f"Apply complete: {apply_result.updated} updated, "
            f"{apply_result.inserted} inserted"
        )
        return apply_result

    def get_stats(self) -> dict:
        """Get apply statistics."""
        return self.stats.copy()
