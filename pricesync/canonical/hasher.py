"""Deterministic content digest for canonical products.

Key construction: [["full_name", ...], ["business_key", ...], ["price", ...],
["sales_price", ...]] serialized as compact JSON, then SHA256.

Every field is re-canonicalized before hashing, so formatting noise in a
caller-built Product ("120.00" vs "120", doubled spaces in a name) never
changes the digest.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping

from pricesync.canonical.canonicalizer import (
    DEFAULT_PRICE_DECIMALS,
    canonicalize_name,
    canonicalize_price,
)
from pricesync.models import Product


def hash_fields(product: Product, decimals: int = DEFAULT_PRICE_DECIMALS) -> list[list]:
    """Canonical (field, value) pairs in hashing order."""
    return [
        ["full_name", canonicalize_name(product.full_name or "")],
        ["business_key", product.business_key],
        ["price", canonicalize_price(product.price, decimals)],
        ["sales_price", canonicalize_price(product.sales_price, decimals)],
    ]


def compute_hash(product: Product, decimals: int = DEFAULT_PRICE_DECIMALS) -> str:
    """Generate a deterministic SHA256 digest of a product's canonical fields.

    Args:
        product: Canonical product

    Returns:
        64-character hex digest
    """
    payload = json.dumps(
        hash_fields(product, decimals), ensure_ascii=False, separators=(",", ":")
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def build_hash_index(products: Mapping[str, Product]) -> dict[str, str]:
    """Map digest -> business key for a ProductMap.

    Informational only: when two keys share a digest the later one wins.
    """
    return {compute_hash(product): key for key, product in products.items()}
