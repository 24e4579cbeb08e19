"""Unit tests for SyncOrchestrator.

Paginator and page sources are mocked; the catalog is in memory.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, Mock

import pytest

from pricesync.integration.target_catalog import InMemoryTargetCatalog, TargetCatalogError
from pricesync.pipeline.orchestrator import SyncOrchestrator, run_sync
from pricesync.pipeline.paginator import TransportFailure
from pricesync.pipeline.types import PaginationResult, SyncStatus, UpsertResult


@pytest.fixture
def sources():
    pair = Mock()
    pair.items = Mock(name="items_source")
    pair.pricing = Mock(name="pricing_source")
    return pair


@pytest.fixture
def mock_paginator(raw_items, raw_documents, sources):
    results = {
        id(sources.items): PaginationResult(label="Products", records=raw_items),
        id(sources.pricing): PaginationResult(label="ItemPricing", records=raw_documents),
    }
    paginator = AsyncMock()
    paginator.run = AsyncMock(side_effect=lambda source, batch_size: results[id(source)])
    return paginator


class TestReconcile:
    """Test normalize, diff and apply over already fetched records."""

    @pytest.mark.asyncio
    async def test_dry_run(self, raw_items, raw_documents, target_records):
        catalog = InMemoryTargetCatalog(target_records)
        orchestrator = SyncOrchestrator(catalog)

        result = await orchestrator.reconcile(raw_items, raw_documents)

        assert result.status == SyncStatus.SUCCESS
        assert result.complete
        assert (result.source_total, result.target_total) == (3, 2)
        assert result.change_set.to_summary() == {
            "updates": ["SKU-001", "SKU-003"],
            "inserts": ["SKU-002"],
        }
        assert result.applied is False
        assert result.apply_result is None
        assert catalog.get("SKU-001")["sale_price"] == ""

    @pytest.mark.asyncio
    async def test_apply(self, raw_items, raw_documents, target_records):
        catalog = InMemoryTargetCatalog(target_records)
        orchestrator = SyncOrchestrator(catalog)

        result = await orchestrator.reconcile(raw_items, raw_documents, apply=True)

        assert result.applied is True
        assert (result.apply_result.updated, result.apply_result.inserted) == (2, 1)
        assert catalog.get("SKU-001")["sale_price"] == "100"
        assert catalog.get("SKU-003")["sale_price"] == ""
        assert catalog.get("SKU-002")["regular_price"] == "200"

    @pytest.mark.asyncio
    async def test_truncated_source_is_partial(self, raw_items, raw_documents):
        orchestrator = SyncOrchestrator(InMemoryTargetCatalog())

        result = await orchestrator.reconcile(
            raw_items, raw_documents, truncated_sources=["ItemPricing"]
        )

        assert result.status == SyncStatus.PARTIAL_SUCCESS
        assert not result.complete
        assert result.to_summary()["truncated_sources"] == ["ItemPricing"]

    @pytest.mark.asyncio
    async def test_apply_failure_propagates(self, raw_items, raw_documents):
        catalog = AsyncMock()
        catalog.list_products = AsyncMock(return_value=[])
        catalog.upsert = AsyncMock(return_value=UpsertResult(success=False, message="read-only"))

        with pytest.raises(TargetCatalogError):
            await SyncOrchestrator(catalog).reconcile(raw_items, raw_documents, apply=True)


class TestRun:
    """Test the full fetch-then-reconcile run."""

    @pytest.mark.asyncio
    async def test_fetches_items_then_pricing(self, mock_paginator, sources, target_records):
        orchestrator = SyncOrchestrator(
            InMemoryTargetCatalog(target_records),
            sources=sources,
            paginator=mock_paginator,
            batch_size=3,
        )

        result = await orchestrator.run()

        calls = mock_paginator.run.await_args_list
        assert [c.args for c in calls] == [(sources.items, 3), (sources.pricing, 3)]
        assert result.update_count == 2
        assert result.insert_count == 1
        assert result.duration_seconds >= 0

    @pytest.mark.asyncio
    async def test_truncated_fetch_marks_partial(self, mock_paginator, sources, raw_items):
        truncated = PaginationResult(label="Products", records=raw_items[:1], truncated=True)
        fetch = mock_paginator.run.side_effect
        mock_paginator.run.side_effect = lambda source, batch_size: (
            truncated if source is sources.items else fetch(source, batch_size)
        )

        result = await SyncOrchestrator(
            InMemoryTargetCatalog(), sources=sources, paginator=mock_paginator
        ).run()

        assert result.status == SyncStatus.PARTIAL_SUCCESS
        assert result.truncated_sources == ["Products"]
        assert result.source_total == 1

    @pytest.mark.asyncio
    async def test_transport_failure_propagates(self, mock_paginator, sources):
        mock_paginator.run.side_effect = TransportFailure(1, "https://erp.test/Items", 502)
        catalog = InMemoryTargetCatalog()

        with pytest.raises(TransportFailure):
            await run_sync(catalog, sources, mock_paginator, apply=True)

        assert len(catalog) == 0

    @pytest.mark.asyncio
    async def test_run_requires_sources(self):
        with pytest.raises(ValueError):
            await SyncOrchestrator(InMemoryTargetCatalog()).run()
