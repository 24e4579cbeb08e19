"""Sync orchestrator - one full remote-to-catalog run.

Steps:
1. Paginate items, then pricing documents, from the remote API
2. Normalize both into the canonical Product map
3. Read and normalize the target catalog
4. Hash-index both sides (informational) and diff
5. Optionally apply the ChangeSet to the catalog

Transport failures and catalog write failures propagate; a timed-out
source yields a PARTIAL_SUCCESS run over the records fetched so far.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from uuid import uuid4

import structlog

from pricesync.canonical.hasher import build_hash_index
from pricesync.canonical.normalizer import ProductNormalizer
from pricesync.integration.target_catalog import TargetCatalog
from pricesync.models import RawItem, RawPricingDocument
from pricesync.pipeline.applier import ChangeApplier
from pricesync.pipeline.config_loader import SourcePair
from pricesync.pipeline.diff import compare, diff_fields
from pricesync.pipeline.paginator import ConcurrentPaginator
from pricesync.pipeline.types import SyncResult, SyncStatus

logger = structlog.get_logger(__name__)


class SyncOrchestrator:
    """Orchestrates fetch, normalization, diff and apply for one run.

    Usage:
        orchestrator = SyncOrchestrator(catalog, sources=sources, paginator=paginator)
        result = await orchestrator.run(apply=False)
        print(result.update_count, result.insert_count)
    """

    def __init__(
        self,
        catalog: TargetCatalog,
        sources: SourcePair | None = None,
        paginator: ConcurrentPaginator | None = None,
        normalizer: ProductNormalizer | None = None,
        batch_size: int = 5,
    ):
        """Initialize orchestrator.

        Args:
            catalog: Target catalog to read from and write to
            sources: Remote page sources (required for run())
            paginator: Paginator used for both sources
            normalizer: Shared normalizer for source and target sides
            batch_size: Concurrent pages per batch
        """
        self.catalog = catalog
        self.sources = sources
        self.paginator = paginator or ConcurrentPaginator()
        self.normalizer = normalizer or ProductNormalizer()
        self.batch_size = batch_size

    async def run(self, apply: bool = False) -> SyncResult:
        """Fetch from the remote API and reconcile against the catalog.

        Raises:
            TransportFailure: A page request returned a non-success status
            TargetCatalogError: A catalog write failed during apply
        """
        if self.sources is None:
            raise ValueError("SyncOrchestrator.run() requires page sources")

        run_id = uuid4().hex[:12]
        structlog.contextvars.bind_contextvars(run_id=run_id)
        start_time = time.time()
        try:
            logger.info("sync_started", apply=apply, batch_size=self.batch_size)

            items = await self.paginator.run(self.sources.items, self.batch_size)
            logger.info("items_fetched", count=len(items), truncated=items.truncated)

            pricing = await self.paginator.run(self.sources.pricing, self.batch_size)
            logger.info("pricing_fetched", count=len(pricing), truncated=pricing.truncated)

            truncated = [r.label for r in (items, pricing) if r.truncated]
            result = await self.reconcile(
                items.records, pricing.records, apply=apply, truncated_sources=truncated
            )
            result.duration_seconds = time.time() - start_time
            return result
        finally:
            structlog.contextvars.unbind_contextvars("run_id")

    async def reconcile(
        self,
        items: Iterable[RawItem],
        pricing_documents: Iterable[RawPricingDocument],
        apply: bool = False,
        truncated_sources: list[str] | None = None,
    ) -> SyncResult:
        """Normalize fetched records, diff against the catalog, optionally apply.

        Args:
            items: Raw catalog items
            pricing_documents: Raw pricing documents
            apply: Write the ChangeSet to the catalog
            truncated_sources: Labels of sources cut short by a timeout

        Returns:
            SyncResult with ChangeSet and counts
        """
        start_time = time.time()
        truncated_sources = list(truncated_sources or [])

        source_map = self.normalizer.normalize(items, pricing_documents)
        logger.info("source_normalized", count=len(source_map))

        target_records = await self.catalog.list_products()
        target_map = self.normalizer.normalize_external_products(target_records)
        logger.info("target_normalized", count=len(target_map), records=len(target_records))

        source_index = build_hash_index(source_map)
        target_index = build_hash_index(target_map)
        logger.debug(
            "hash_index_built",
            source_hashes=len(source_index),
            target_hashes=len(target_index),
        )

        change_set = compare(source_map, target_map)

        for update in change_set.updates:
            logger.info(
                "planned_update",
                sku=update.business_key,
                diff=diff_fields(update.before, update.after),
            )
        for product in change_set.inserts:
            logger.info("planned_insert", sku=product.business_key, product=product.to_record())

        result = SyncResult(
            status=SyncStatus.PARTIAL_SUCCESS if truncated_sources else SyncStatus.SUCCESS,
            change_set=change_set,
            source_total=len(source_map),
            target_total=len(target_map),
            truncated_sources=truncated_sources,
        )

        if apply and not change_set.is_empty:
            applier = ChangeApplier(
                self.catalog,
                price_decimals=self.normalizer.price_decimals,
                sale_floor=self.normalizer.sale_floor,
            )
            result.apply_result = await applier.apply(change_set)
        result.applied = apply

        result.duration_seconds = time.time() - start_time
        logger.info(
            "sync_complete",
            status=result.status.value,
            updates=result.update_count,
            inserts=result.insert_count,
            applied=result.applied,
        )
        return result


async def run_sync(
    catalog: TargetCatalog,
    sources: SourcePair,
    paginator: ConcurrentPaginator,
    normalizer: ProductNormalizer | None = None,
    batch_size: int = 5,
    apply: bool = False,
) -> SyncResult:
    """Convenience function to run one sync.

    Returns:
        SyncResult
    """
    orchestrator = SyncOrchestrator(
        catalog,
        sources=sources,
        paginator=paginator,
        normalizer=normalizer,
        batch_size=batch_size,
    )
    return await orchestrator.run(apply=apply)
