"""Page sources for the remote exchange API.

A page source knows how to address one page of a dataset and how to decode
that page's body. Exactly two datasets exist, items and pricing documents,
and they differ only in path and record shape.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar
from urllib.parse import urlencode

from pydantic import BaseModel, ValidationError

from pricesync.models import PriceType, RawItem, RawPricingDocument

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


@dataclass(frozen=True)
class RequestDescriptor:
    """Everything the paginator needs to issue one page request."""

    address: str
    headers: dict[str, str] = field(default_factory=dict)


class PageSource(ABC, Generic[RecordT]):
    """Abstract base class for one paginated remote dataset.

    Key principles:
    1. Connection settings are explicit constructor values
    2. Decoding never raises; a malformed page is an empty page
    3. Pages are 1-based and addressed by index only
    """

    def __init__(self, base_url: str, auth_token: str, page_size: int):
        """Initialize page source.

        Args:
            base_url: API base URL (path is appended)
            auth_token: Value for the Authorization header
            page_size: Records requested per page
        """
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        self.base_url = base_url.rstrip("/")
        self.auth_token = auth_token
        self.page_size = page_size

    @property
    @abstractmethod
    def path(self) -> str:
        """Endpoint path under the base URL."""

    @abstractmethod
    def label(self) -> str:
        """Human-readable dataset name for logs."""

    @abstractmethod
    def _parse_record(self, data: dict[str, Any]) -> RecordT:
        """Validate one decoded JSON object into a raw record."""

    def build_request(self, page_index: int) -> RequestDescriptor:
        """Build the request for one page.

        Args:
            page_index: 1-based page number

        Returns:
            RequestDescriptor with full address and auth headers
        """
        query = urlencode({"Pack": page_index, "PackSize": self.page_size})
        return RequestDescriptor(
            address=f"{self.base_url}{self.path}?{query}",
            headers={"Authorization": self.auth_token, "Accept": "application/json"},
        )

    def decode_page(self, raw_body: str | bytes) -> list[RecordT]:
        """Decode a page body into raw records.

        A body that is not a JSON array decodes to no records. Array entries
        that are not objects, or fail validation, are skipped.

        Args:
            raw_body: Response body

        Returns:
            List of raw records (empty signals the last page)
        """
        try:
            decoded = json.loads(raw_body) if raw_body else None
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"{self.label()}: malformed page payload ignored: {e}")
            return []

        if not decoded or not isinstance(decoded, list):
            return []

        records: list[RecordT] = []
        for entry in decoded:
            if not isinstance(entry, dict):
                logger.warning(f"{self.label()}: skipping non-object record: {entry!r}")
                continue
            try:
                records.append(self._parse_record(entry))
            except ValidationError as e:
                logger.warning(f"{self.label()}: failed to parse record: {e}")
                continue

        return records

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.base_url}{self.path}, page_size={self.page_size})"


class ItemsPageSource(PageSource[RawItem]):
    """Catalog items (identity, business key, display name)."""

    path = "/Items"

    def label(self) -> str:
        return "Products"

    def _parse_record(self, data: dict[str, Any]) -> RawItem:
        return RawItem.model_validate(data)


class ItemPricingPageSource(PageSource[RawPricingDocument]):
    """Dated pricing documents; kept raw, the normalizer interprets them."""

    path = "/ItemPricing"

    def __init__(
        self,
        base_url: str,
        auth_token: str,
        page_size: int,
        regular_price_type_id: str,
        sale_price_type_id: str,
    ):
        super().__init__(base_url, auth_token, page_size)
        self.price_type_ids = {
            regular_price_type_id: PriceType.REGULAR,
            sale_price_type_id: PriceType.SALE,
        }

    def label(self) -> str:
        return "ItemPricing"

    def _parse_record(self, data: dict[str, Any]) -> RawPricingDocument:
        payload = dict(data)
        payload["price_type"] = self.price_type_ids.get(str(data.get("PriceType", "")))
        return RawPricingDocument.model_validate(payload)
