"""Type definitions for pipeline operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pricesync.models import Product


class SyncStatus(str, Enum):
    """Status of a sync run."""

    SUCCESS = "SUCCESS"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"  # A source was truncated by a timeout


@dataclass
class PaginationResult:
    """Records accumulated by one paginator run.

    ``truncated`` is set when a request timed out and the run returned
    early with whatever had been decoded so far.
    """

    label: str
    records: list[Any] = field(default_factory=list)
    pages_fetched: int = 0
    batches: int = 0
    truncated: bool = False

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class ProductUpdate:
    """A product present on both sides whose canonical content differs."""

    before: Product  # Target catalog state
    after: Product  # Source state to write

    @property
    def business_key(self) -> str:
        return self.after.business_key


@dataclass
class ChangeSet:
    """Classified actions from comparing source and target ProductMaps."""

    inserts: list[Product] = field(default_factory=list)
    updates: list[ProductUpdate] = field(default_factory=list)

    @property
    def insert_count(self) -> int:
        return len(self.inserts)

    @property
    def update_count(self) -> int:
        return len(self.updates)

    @property
    def is_empty(self) -> bool:
        return not self.inserts and not self.updates

    def to_summary(self) -> dict:
        """Business keys per action, for CLI and log output."""
        return {
            "updates": [u.business_key for u in self.updates],
            "inserts": [p.business_key for p in self.inserts],
        }


@dataclass(frozen=True)
class UpsertRequest:
    """Write request for the target catalog, keyed by business key.

    Prices are canonical strings, "" when absent.
    """

    business_key: str
    full_name: str | None
    regular_price: str
    sale_price: str
    on_sale: bool  # Sale category membership


@dataclass
class UpsertResult:
    """Outcome of one target catalog upsert."""

    success: bool
    product_id: int | str | None = None
    created: bool = False
    message: str = ""


@dataclass
class ApplyResult:
    """Counts from applying a ChangeSet."""

    updated: int = 0
    inserted: int = 0
    created_ids: dict[str, int | str | None] = field(default_factory=dict)


@dataclass
class SyncResult:
    """Outcome of one sync run."""

    status: SyncStatus
    change_set: ChangeSet
    source_total: int = 0
    target_total: int = 0
    applied: bool = False
    apply_result: ApplyResult | None = None
    truncated_sources: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def update_count(self) -> int:
        return self.change_set.update_count

    @property
    def insert_count(self) -> int:
        return self.change_set.insert_count

    @property
    def complete(self) -> bool:
        """False when a source was truncated and the plan covers partial data."""
        return self.status == SyncStatus.SUCCESS

    def to_summary(self) -> dict:
        return {
            "status": self.status.value,
            "source_count": self.source_total,
            "target_count": self.target_total,
            "update_count": self.update_count,
            "insert_count": self.insert_count,
            **self.change_set.to_summary(),
            "applied": self.applied,
            "truncated_sources": list(self.truncated_sources),
            "duration_seconds": round(self.duration_seconds, 3),
        }
