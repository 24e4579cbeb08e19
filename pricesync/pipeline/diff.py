"""Change detection between source and target ProductMaps.

- Key in both maps with different content hash -> update
- Key only in source -> insert
- Key only in target -> left untouched (no deletes)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from pricesync.canonical.canonicalizer import canonicalize_name, canonicalize_price
from pricesync.canonical.hasher import compute_hash
from pricesync.models import Product
from pricesync.pipeline.types import ChangeSet, ProductUpdate

logger = logging.getLogger(__name__)

_FIELDS = ("full_name", "business_key", "price", "sales_price")


def compare(
    source_map: Mapping[str, Product], target_map: Mapping[str, Product]
) -> ChangeSet:
    """Classify source products against the target catalog.

    Args:
        source_map: Business key -> Product from the remote feed
        target_map: Business key -> Product from the target catalog

    Returns:
        ChangeSet with inserts and updates in source-map order
    """
    change_set = ChangeSet()

    for key, source_product in source_map.items():
        target_product = target_map.get(key)

        if target_product is None:
            change_set.inserts.append(source_product)
            continue

        if compute_hash(source_product) != compute_hash(target_product):
            change_set.updates.append(
                ProductUpdate(before=target_product, after=source_product)
            )

    logger.info(
        f"Planned actions: updates={change_set.update_count}, "
        f"inserts={change_set.insert_count}"
    )
    return change_set


def diff_fields(before: Product, after: Product) -> dict[str, tuple]:
    """Field-level differences between two products, in canonical form.

    Returns:
        Dict of field name -> (before, after) for fields that differ
    """
    diffs: dict[str, tuple] = {}
    for name in _FIELDS:
        left = getattr(before, name)
        right = getattr(after, name)
        if name == "full_name":
            left, right = canonicalize_name(left or ""), canonicalize_name(right or "")
        elif name in ("price", "sales_price"):
            left, right = canonicalize_price(left), canonicalize_price(right)
        if left != right:
            diffs[name] = (left, right)
    return diffs
