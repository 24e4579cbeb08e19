"""Target catalog collaborators.

The sync core only needs two operations from a catalog: a bulk read of
every current record, and an upsert keyed by business key. The in-memory
catalog backs dry runs and tests; the JSON file catalog persists between
runs for local use.

Native record shape:
    {"id": 12, "sku": "SKU-001", "name": "Pump 12V", "regular_price": "120",
     "sale_price": "100", "on_sale": true, "status": "publish"}
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from pricesync.models import ExternalProduct
from pricesync.pipeline.types import UpsertRequest, UpsertResult

logger = logging.getLogger(__name__)


def _record_key(record: dict[str, Any]) -> str | None:
    """Business key of a native record, read the way bulk-read records are."""
    try:
        return ExternalProduct.model_validate(record).business_key
    except ValidationError:
        return None


class TargetCatalogError(Exception):
    """Raised when a catalog write fails; the apply stops at this point."""

    def __init__(self, business_key: str, message: str):
        self.business_key = business_key
        super().__init__(f"Catalog write failed for {business_key}: {message}")


class TargetCatalog(ABC):
    """Abstract target catalog."""

    @abstractmethod
    async def list_products(self) -> list[dict[str, Any]]:
        """Return every current record in native shape."""

    @abstractmethod
    async def upsert(self, request: UpsertRequest) -> UpsertResult:
        """Create or update the record for ``request.business_key``.

        Returns:
            UpsertResult; on insert ``product_id`` is the new identity
        """


class InMemoryTargetCatalog(TargetCatalog):
    """Catalog held in a dict keyed by business key.

    Args:
        records: Initial native records (records without a sku are kept
            under a generated key so bulk reads still return them)
        new_product_status: Status given to inserted records
        sale_category: Category slug mirrored by ``on_sale``
    """

    def __init__(
        self,
        records: list[dict[str, Any]] | None = None,
        new_product_status: str = "draft",
        sale_category: str = "on-sale",
    ):
        self.new_product_status = new_product_status
        self.sale_category = sale_category
        self._records: dict[str, dict[str, Any]] = {}
        self._next_id = 1

        for index, record in enumerate(records or []):
            record = dict(record)
            key = _record_key(record) or f"__unkeyed_{index}"
            if "id" not in record:
                record["id"] = self._allocate_id()
            elif isinstance(record["id"], int):
                self._next_id = max(self._next_id, record["id"] + 1)
            self._records[str(key)] = record

    def _allocate_id(self) -> int:
        new_id = self._next_id
        self._next_id += 1
        return new_id

    async def list_products(self) -> list[dict[str, Any]]:
        return [dict(record) for record in self._records.values()]

    async def upsert(self, request: UpsertRequest) -> UpsertResult:
        existing = self._records.get(request.business_key)

        if existing is None:
            record = {
                "id": self._allocate_id(),
                "sku": request.business_key,
                "name": request.full_name or request.business_key,
                "regular_price": request.regular_price,
                "sale_price": request.sale_price,
                "status": self.new_product_status,
            }
            self._apply_sale_category(record, request.on_sale)
            self._records[request.business_key] = record
            logger.info(f"Inserted catalog product SKU={request.business_key} ID={record['id']}")
            return UpsertResult(success=True, product_id=record["id"], created=True)

        # Native records may carry fixture-style names; rewrite to native ones
        if "FullName" in existing:
            existing.setdefault("name", existing["FullName"])
        for legacy in ("FullName", "InternalArticle", "Price", "SalesPrice"):
            existing.pop(legacy, None)
        existing["sku"] = request.business_key
        if request.full_name is not None:
            existing["name"] = request.full_name
        existing["regular_price"] = request.regular_price
        existing["sale_price"] = request.sale_price
        self._apply_sale_category(existing, request.on_sale)
        logger.info(f"Updated catalog product SKU={request.business_key}")
        return UpsertResult(success=True, product_id=existing.get("id"), created=False)

    def _apply_sale_category(self, record: dict[str, Any], on_sale: bool) -> None:
        categories = [c for c in record.get("categories", []) if c != self.sale_category]
        if on_sale:
            categories.append(self.sale_category)
        record["categories"] = categories
        record["on_sale"] = on_sale

    def get(self, business_key: str) -> dict[str, Any] | None:
        record = self._records.get(business_key)
        return dict(record) if record is not None else None

    def __len__(self) -> int:
        return len(self._records)


class JsonFileTargetCatalog(InMemoryTargetCatalog):
    """In-memory catalog loaded from and saved to a JSON file.

    The file holds either a list of native records or a mapping of
    business key -> record (the shape exported by dry runs).
    """

    def __init__(self, path: Path, **kwargs):
        self.path = Path(path)
        super().__init__(self._read(self.path), **kwargs)

    @staticmethod
    def _read(path: Path) -> list[dict[str, Any]]:
        if not path.exists():
            logger.info(f"Catalog file {path} not found, starting empty")
            return []

        data = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            records = []
            for key, record in data.items():
                record = dict(record)
                record.setdefault("sku", record.get("InternalArticle") or key)
                records.append(record)
            return records
        if isinstance(data, list):
            return [record for record in data if isinstance(record, dict)]

        raise ValueError(f"Catalog file {path} must hold a JSON list or object")

    def save(self, path: Path | None = None) -> Path:
        """Write all records back as a JSON list."""
        target = Path(path) if path is not None else self.path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            json.dumps(list(self._records.values()), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        logger.info(f"Saved {len(self)} catalog records to {target}")
        return target
