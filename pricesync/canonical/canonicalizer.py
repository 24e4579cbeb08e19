"""Field-level canonicalization for product names and decimal prices.

Canonical forms are what equality and hashing see. Prices are idempotent
under re-canonicalization; names are too, except that entities are decoded
one level per call, so a double-escaped "&amp;amp;" needs two passes.

Normalization rules:
- Name: drop escape backslashes, decode HTML entities, trim, collapse
  whitespace, Unicode NFC
- Price: fixed precision (half away from zero), trailing zeros and a
  trailing point stripped, any zero rendered as "0"
"""

from __future__ import annotations

import html
import logging
import re
import unicodedata
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

logger = logging.getLogger(__name__)

DEFAULT_PRICE_DECIMALS = 2

_WHITESPACE = re.compile(r"\s+")


def canonicalize_name(raw: str | None) -> str | None:
    """Normalize a product name to canonical form.

    Args:
        raw: Name as received (may carry escaped quotes or entities)

    Returns:
        Canonical name, or None if input is None
    """
    if raw is None:
        return None

    # Escaped JSON / magic quotes leave stray backslashes ("l\\m" -> "lm")
    text = str(raw).replace("\\", "")

    # &amp; -> &, &#39; -> '
    text = html.unescape(text)

    text = _WHITESPACE.sub(" ", text.strip())

    return unicodedata.normalize("NFC", text)


def canonicalize_price(raw, decimals: int = DEFAULT_PRICE_DECIMALS) -> str | None:
    """Normalize a price to a stable decimal string.

    Args:
        raw: Price as str, int, float or Decimal
        decimals: Fixed precision applied before trailing zeros are stripped

    Returns:
        Canonical decimal string ("120", "99.9", "0"), or None when the
        input is missing or not a number

    Example:
        >>> canonicalize_price("120.00")
        '120'
        >>> canonicalize_price("0.105")
        '0.11'
    """
    if raw is None:
        return None

    if isinstance(raw, float):
        raw = repr(raw)
    text = str(raw).strip()
    if not text:
        return None

    try:
        value = Decimal(text)
        if not value.is_finite():
            raise InvalidOperation
        quantum = Decimal(1).scaleb(-decimals)
        formatted = format(value.quantize(quantum, rounding=ROUND_HALF_UP), "f")
    except InvalidOperation:
        logger.warning(f"Ignoring unparseable price value: {raw!r}")
        return None

    if "." in formatted:
        formatted = formatted.rstrip("0").rstrip(".")

    if formatted in ("", "-", "-0") or Decimal(formatted) == 0:
        return "0"

    return formatted
