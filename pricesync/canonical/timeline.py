"""Latest-price resolution across dated pricing documents."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from pricesync.models import PriceType, RawPricingDocument

logger = logging.getLogger(__name__)

# Documents without a usable date sort after every dated one
_OLDEST = float("-inf")


def parse_timestamp(value: str | None) -> float | None:
    """Parse an ISO-8601 document date to a POSIX timestamp.

    Naive values are taken as UTC. Returns None when missing or unparseable.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable pricing document date: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def latest_price_by_item(
    documents: Iterable[RawPricingDocument], price_type: PriceType
) -> dict[str, str]:
    """Map each item identity to its most recent price of ``price_type``.

    Documents are scanned newest first; the first price seen for an item
    wins. Lines missing an item identity or a price are skipped.

    Args:
        documents: Pricing documents of any type
        price_type: Type to resolve (REGULAR or SALE)

    Returns:
        Dict of item identity -> raw price string
    """
    selected = [doc for doc in documents if doc.price_type == price_type]

    def sort_key(doc: RawPricingDocument) -> float:
        ts = parse_timestamp(doc.timestamp)
        return _OLDEST if ts is None else ts

    # sorted() is stable, so equal dates keep feed order
    selected.sort(key=sort_key, reverse=True)

    price_by_item: dict[str, str] = {}
    for doc in selected:
        for line in doc.lines:
            if not line.item_identity or line.price is None:
                continue
            if line.item_identity not in price_by_item:
                price_by_item[line.item_identity] = line.price

    return price_by_item
