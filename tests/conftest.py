"""Pytest configuration and fixtures for pricesync tests.

Provides the sample feed used across unit and integration tests: three items,
a REGULAR and a later SALE pricing document, and a two-record target catalog.
"""

from __future__ import annotations

import pytest

from pricesync.canonical.normalizer import ProductNormalizer
from pricesync.config import DEFAULT_REGULAR_PRICE_TYPE_ID, DEFAULT_SALE_PRICE_TYPE_ID
from pricesync.models import PriceType, RawItem, RawPricingDocument


@pytest.fixture
def item_records() -> list[dict]:
    """Items as the remote Items endpoint returns them."""
    return [
        {"uid": "item-1", "FullName": "Pump 12V, 6.1 l\\m", "InternalArticle": "SKU-001"},
        {
            "uid": "item-2",
            "FullName": "Transmission Oil MF Full Synthetic SAE 50 Final Drive &amp; Axle Oil 3,78L",
            "InternalArticle": "SKU-002",
        },
        {"uid": "item-3", "FullName": "Pump 12V, 6.1 l\\m", "InternalArticle": "SKU-003"},
    ]


@pytest.fixture
def pricing_records() -> list[dict]:
    """Pricing documents as the remote ItemPricing endpoint returns them."""
    return [
        {
            "uid": "doc-1",
            "Number": "0001",
            "Date": "2024-01-01T10:00:00",
            "PriceType": DEFAULT_REGULAR_PRICE_TYPE_ID,
            "Items": [
                {"Item": "item-1", "Price": "120"},
                {"Item": "item-2", "Price": "200"},
                {"Item": "item-3", "Price": "220"},
            ],
        },
        {
            "uid": "doc-2",
            "Number": "0002",
            "Date": "2024-02-01T10:00:00",
            "PriceType": DEFAULT_SALE_PRICE_TYPE_ID,
            "Items": [
                {"Item": "item-1", "Price": "100"},
                {"Item": "item-2", "Price": "220"},
                {"Item": "item-3", "Price": "0.09"},
            ],
        },
    ]


@pytest.fixture
def target_records() -> list[dict]:
    """Target catalog: SKU-001 without a sale, SKU-003 with a 0.1 sale, no SKU-002."""
    return [
        {
            "id": 10,
            "sku": "SKU-001",
            "name": "Pump 12V, 6.1 lm",
            "regular_price": "120",
            "sale_price": "",
        },
        {
            "id": 11,
            "sku": "SKU-003",
            "name": "Pump 12V, 6.1 lm",
            "regular_price": "220",
            "sale_price": "0.1",
        },
    ]


@pytest.fixture
def raw_items(item_records: list[dict]) -> list[RawItem]:
    return [RawItem.model_validate(record) for record in item_records]


@pytest.fixture
def raw_documents(pricing_records: list[dict]) -> list[RawPricingDocument]:
    types = {
        DEFAULT_REGULAR_PRICE_TYPE_ID: PriceType.REGULAR,
        DEFAULT_SALE_PRICE_TYPE_ID: PriceType.SALE,
    }
    return [
        RawPricingDocument.model_validate({**record, "price_type": types[record["PriceType"]]})
        for record in pricing_records
    ]


@pytest.fixture
def normalizer() -> ProductNormalizer:
    """Default normalizer (2 decimals, 0.10 sale floor)."""
    return ProductNormalizer()


@pytest.fixture
def make_document():
    """Factory: RawPricingDocument from item identity -> price."""

    def _make(
        identity: str, price_type: PriceType, date: str | None, prices: dict[str, str]
    ) -> RawPricingDocument:
        return RawPricingDocument(
            identity=identity,
            price_type=price_type,
            timestamp=date,
            lines=[{"Item": item, "Price": price} for item, price in prices.items()],
        )

    return _make
