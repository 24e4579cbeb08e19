"""Business rules over a (regular, sale) price pair.

Rules run in order, each consuming the previous rule's output:
1. Floor: a sale price below the floor (0.10) is discarded
2. Promotion: a lone sale price becomes the regular price
3. Dominance: a sale price not lower than the regular price is discarded
"""

from __future__ import annotations

from decimal import Decimal

from pricesync.canonical.canonicalizer import DEFAULT_PRICE_DECIMALS, canonicalize_price
from pricesync.models import SALE_PRICE_FLOOR


def normalize_price_pair(
    regular,
    sale,
    decimals: int = DEFAULT_PRICE_DECIMALS,
    sale_floor: Decimal = SALE_PRICE_FLOOR,
) -> tuple[str | None, str | None]:
    """Apply floor, promotion and dominance rules to a price pair.

    Inputs are canonicalized first, so raw and canonical values are both
    accepted.

    Args:
        regular: Regular price (any form canonicalize_price accepts)
        sale: Sale price
        decimals: Price precision
        sale_floor: Minimum sale price kept by the floor rule

    Returns:
        Tuple of (regular, sale) canonical strings, either may be None
    """
    r = canonicalize_price(regular, decimals)
    s = canonicalize_price(sale, decimals)

    if s is not None and Decimal(s) < sale_floor:
        s = None

    if r is None and s is not None:
        r, s = s, None

    if r is not None and s is not None and Decimal(s) >= Decimal(r):
        s = None

    return r, s


def has_sale(sale, sale_floor: Decimal = SALE_PRICE_FLOOR) -> bool:
    """Whether a sale price qualifies for sale category membership."""
    s = canonicalize_price(sale)
    return s is not None and Decimal(s) >= sale_floor
