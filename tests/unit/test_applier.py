"""Unit tests for ChangeApplier."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from pricesync.integration.target_catalog import InMemoryTargetCatalog, TargetCatalogError
from pricesync.models import Product
from pricesync.pipeline.applier import ChangeApplier
from pricesync.pipeline.types import ChangeSet, ProductUpdate, UpsertResult


@pytest.fixture
def change_set() -> ChangeSet:
    return ChangeSet(
        inserts=[Product(full_name="Oil", business_key="SKU-002", price="200")],
        updates=[
            ProductUpdate(
                before=Product(full_name="Pump", business_key="SKU-001", price="120"),
                after=Product(
                    full_name="Pump", business_key="SKU-001", price="120", sales_price="100"
                ),
            ),
            ProductUpdate(
                before=Product(
                    full_name="Pump", business_key="SKU-003", price="220", sales_price="0.1"
                ),
                after=Product(full_name="Pump", business_key="SKU-003", price="220"),
            ),
        ],
    )


@pytest.fixture
def mock_catalog():
    catalog = AsyncMock()
    catalog.upsert = AsyncMock(
        side_effect=lambda request: UpsertResult(success=True, product_id=f"id-{request.business_key}")
    )
    return catalog


class TestBuildUpsertRequest:
    """Test translation of products into catalog writes."""

    def test_sale_product(self):
        applier = ChangeApplier(InMemoryTargetCatalog())
        product = Product(full_name="Pump", business_key="SKU-1", price="120", sales_price="100")

        request = applier.build_upsert_request(product)

        assert request.business_key == "SKU-1"
        assert request.full_name == "Pump"
        assert (request.regular_price, request.sale_price) == ("120", "100")
        assert request.on_sale is True

    def test_regular_only_product_clears_sale(self):
        applier = ChangeApplier(InMemoryTargetCatalog())

        request = applier.build_upsert_request(Product(business_key="SKU-1", price="120.00"))

        assert (request.regular_price, request.sale_price) == ("120", "")
        assert request.on_sale is False
        assert request.full_name is None


class TestApply:
    """Test apply ordering and failure handling."""

    @pytest.mark.asyncio
    async def test_updates_before_inserts(self, mock_catalog, change_set):
        applier = ChangeApplier(mock_catalog)

        result = await applier.apply(change_set)

        written = [call.args[0].business_key for call in mock_catalog.upsert.await_args_list]
        assert written == ["SKU-001", "SKU-003", "SKU-002"]
        assert (result.updated, result.inserted) == (2, 1)
        assert result.created_ids == {"SKU-002": "id-SKU-002"}
        assert applier.get_stats() == {"updated": 2, "inserted": 1}

    @pytest.mark.asyncio
    async def test_rejected_write_stops_apply(self, mock_catalog, change_set):
        mock_catalog.upsert.side_effect = [
            UpsertResult(success=True),
            UpsertResult(success=False, message="locked"),
            UpsertResult(success=True),
        ]
        applier = ChangeApplier(mock_catalog)

        with pytest.raises(TargetCatalogError) as exc_info:
            await applier.apply(change_set)

        assert exc_info.value.business_key == "SKU-003"
        assert "locked" in str(exc_info.value)
        assert mock_catalog.upsert.await_count == 2
        assert applier.get_stats() == {"updated": 1, "inserted": 0}

    @pytest.mark.asyncio
    async def test_catalog_exception_is_wrapped(self, mock_catalog, change_set):
        mock_catalog.upsert.side_effect = RuntimeError("connection reset")
        applier = ChangeApplier(mock_catalog)

        with pytest.raises(TargetCatalogError) as exc_info:
            await applier.apply(change_set)

        assert exc_info.value.business_key == "SKU-001"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert mock_catalog.upsert.await_count == 1

    @pytest.mark.asyncio
    async def test_apply_to_in_memory_catalog(self, change_set, target_records):
        catalog = InMemoryTargetCatalog(target_records)

        result = await ChangeApplier(catalog).apply(change_set)

        assert result.created_ids == {"SKU-002": 12}
        assert catalog.get("SKU-001")["sale_price"] == "100"
        assert catalog.get("SKU-003")["sale_price"] == ""
        assert catalog.get("SKU-002")["status"] == "draft"

    @pytest.mark.asyncio
    async def test_empty_change_set(self, mock_catalog):
        result = await ChangeApplier(mock_catalog).apply(ChangeSet())

        assert (result.updated, result.inserted) == (0, 0)
        mock_catalog.upsert.assert_not_awaited()
