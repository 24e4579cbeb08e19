"""Unit tests for page addressing and page decoding."""

from __future__ import annotations

import json

import pytest

from pricesync.config import DEFAULT_REGULAR_PRICE_TYPE_ID, DEFAULT_SALE_PRICE_TYPE_ID
from pricesync.models import PriceType
from pricesync.pipeline.page_source import ItemPricingPageSource, ItemsPageSource


@pytest.fixture
def items_source() -> ItemsPageSource:
    return ItemsPageSource("https://erp.test/hs/Exchange/", "Basic abc", 500)


@pytest.fixture
def pricing_source() -> ItemPricingPageSource:
    return ItemPricingPageSource(
        "https://erp.test/hs/Exchange",
        "Basic abc",
        100,
        regular_price_type_id=DEFAULT_REGULAR_PRICE_TYPE_ID,
        sale_price_type_id=DEFAULT_SALE_PRICE_TYPE_ID,
    )


class TestBuildRequest:
    """Test page request descriptors."""

    def test_items_address(self, items_source):
        request = items_source.build_request(3)

        assert request.address == "https://erp.test/hs/Exchange/Items?Pack=3&PackSize=500"
        assert request.headers["Authorization"] == "Basic abc"
        assert request.headers["Accept"] == "application/json"

    def test_pricing_address(self, pricing_source):
        request = pricing_source.build_request(1)

        assert request.address == "https://erp.test/hs/Exchange/ItemPricing?Pack=1&PackSize=100"

    def test_labels(self, items_source, pricing_source):
        assert items_source.label() == "Products"
        assert pricing_source.label() == "ItemPricing"

    def test_page_size_must_be_positive(self):
        with pytest.raises(ValueError):
            ItemsPageSource("https://erp.test", "t", 0)


class TestDecodePage:
    """Test page body decoding."""

    def test_items(self, items_source, item_records):
        records = items_source.decode_page(json.dumps(item_records))

        assert [r.business_key for r in records] == ["SKU-001", "SKU-002", "SKU-003"]
        assert records[0].identity == "item-1"
        assert records[0].display_name == "Pump 12V, 6.1 l\\m"

    def test_pricing_maps_price_types(self, pricing_source, pricing_records):
        unknown = {**pricing_records[0], "uid": "doc-3", "PriceType": "wholesale"}
        body = json.dumps(pricing_records + [unknown]).encode("utf-8")

        docs = pricing_source.decode_page(body)

        assert [d.price_type for d in docs] == [PriceType.REGULAR, PriceType.SALE, None]
        assert docs[0].timestamp == "2024-01-01T10:00:00"
        assert [(line.item_identity, line.price) for line in docs[1].lines] == [
            ("item-1", "100"),
            ("item-2", "220"),
            ("item-3", "0.09"),
        ]

    def test_numeric_prices_become_strings(self, pricing_source):
        body = json.dumps(
            [{"uid": "d", "PriceType": DEFAULT_REGULAR_PRICE_TYPE_ID, "Items": [{"Item": "a", "Price": 12.5}]}]
        )

        docs = pricing_source.decode_page(body)

        assert docs[0].lines[0].price == "12.5"

    @pytest.mark.parametrize("body", ["", "[]", "null", "{}", '{"error": "x"}', "not json", b"\xff\xfe"])
    def test_empty_or_malformed_is_no_records(self, items_source, body):
        assert items_source.decode_page(body) == []

    def test_non_object_entries_are_skipped(self, items_source):
        body = json.dumps([1, "x", None, {"uid": "item-1", "InternalArticle": "SKU-001"}])

        records = items_source.decode_page(body)

        assert len(records) == 1
        assert records[0].business_key == "SKU-001"

    def test_invalid_record_is_skipped(self, items_source):
        body = json.dumps([{"uid": {"bad": 1}}, {"uid": "ok", "InternalArticle": "K"}])

        records = items_source.decode_page(body)

        assert [r.identity for r in records] == ["ok"]

    def test_malformed_lines_are_dropped(self, pricing_source):
        body = json.dumps(
            [{"uid": "d", "PriceType": DEFAULT_SALE_PRICE_TYPE_ID, "Items": [{"Item": "a", "Price": "1"}, "junk"]}]
        )

        docs = pricing_source.decode_page(body)

        assert len(docs[0].lines) == 1
