"""pricesync Pydantic models for type-safe data validation.

Raw models accept the remote exchange API's wire names; Product is the
canonical record every comparison and hash is computed over.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

SALE_PRICE_FLOOR = Decimal("0.10")


def _blank_to_none(value: Any) -> str | None:
    """Coerce scalar wire values to stripped strings; empty means missing."""
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        raise ValueError("expected a scalar value")
    text = str(value).strip()
    return text or None


class PriceType(str, Enum):
    """Pricing document kinds the normalizer understands."""

    REGULAR = "REGULAR"
    SALE = "SALE"


class RawItem(BaseModel):
    """Catalog item as delivered by the remote Items endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    identity: str | None = Field(
        default=None, validation_alias=AliasChoices("identity", "uid", "Uid", "UID")
    )
    business_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("business_key", "InternalArticle", "Article"),
    )
    display_name: str | None = Field(
        default=None, validation_alias=AliasChoices("display_name", "FullName", "Name")
    )

    @field_validator("identity", "business_key", mode="before")
    @classmethod
    def coerce_key(cls, v: Any) -> str | None:
        return _blank_to_none(v)

    @field_validator("display_name", mode="before")
    @classmethod
    def coerce_name(cls, v: Any) -> str | None:
        # Names are canonicalized later; keep raw spacing and escapes intact.
        if v is None:
            return None
        return str(v)


class RawPricingLine(BaseModel):
    """One item/price line inside a pricing document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    item_identity: str | None = Field(
        default=None, validation_alias=AliasChoices("item_identity", "Item")
    )
    price: str | None = Field(default=None, validation_alias=AliasChoices("price", "Price"))

    @field_validator("item_identity", "price", mode="before")
    @classmethod
    def coerce_scalar(cls, v: Any) -> str | None:
        return _blank_to_none(v)


class RawPricingDocument(BaseModel):
    """Dated pricing document from the remote ItemPricing endpoint.

    ``price_type`` is None when the document's wire price type is not one of
    the configured identifiers; such documents never contribute prices.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    identity: str | None = Field(
        default=None, validation_alias=AliasChoices("identity", "uid", "Uid", "UID")
    )
    price_type: PriceType | None = None
    timestamp: str | None = Field(
        default=None, validation_alias=AliasChoices("timestamp", "Date")
    )
    lines: list[RawPricingLine] = Field(
        default_factory=list, validation_alias=AliasChoices("lines", "Items")
    )

    @field_validator("identity", "timestamp", mode="before")
    @classmethod
    def coerce_scalar(cls, v: Any) -> str | None:
        return _blank_to_none(v)

    @field_validator("lines", mode="before")
    @classmethod
    def drop_malformed_lines(cls, v: Any) -> list:
        if not isinstance(v, list):
            return []
        return [line for line in v if isinstance(line, dict)]


class ExternalProduct(BaseModel):
    """Target catalog record as returned by a bulk read.

    Accepts both the catalog's native field names and the canonical fixture
    names so exported maps can be fed straight back in.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    business_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("business_key", "sku", "InternalArticle"),
    )
    name: str | None = Field(
        default=None, validation_alias=AliasChoices("name", "FullName", "full_name")
    )
    regular_price: str | None = Field(
        default=None,
        validation_alias=AliasChoices("regular_price", "Price", "price"),
    )
    sale_price: str | None = Field(
        default=None,
        validation_alias=AliasChoices("sale_price", "SalesPrice", "sales_price"),
    )

    @field_validator("business_key", "regular_price", "sale_price", mode="before")
    @classmethod
    def coerce_scalar(cls, v: Any) -> str | None:
        return _blank_to_none(v)

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v: Any) -> str | None:
        if v is None:
            return None
        return str(v)


class Product(BaseModel):
    """Canonical product record shared by source and target sides."""

    model_config = ConfigDict(frozen=True)

    full_name: str | None = None
    business_key: str
    price: str | None = None
    sales_price: str | None = None

    @field_validator("business_key")
    @classmethod
    def validate_business_key(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("business_key must be non-empty")
        return v

    @field_validator("price", "sales_price")
    @classmethod
    def validate_decimal(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            Decimal(v)
        except InvalidOperation as exc:
            raise ValueError(f"not a decimal string: {v!r}") from exc
        return v

    @model_validator(mode="after")
    def validate_sale_invariants(self) -> Product:
        if self.sales_price is None:
            return self
        if self.price is None:
            raise ValueError("sales_price requires price")
        sale = Decimal(self.sales_price)
        if sale < SALE_PRICE_FLOOR:
            raise ValueError(f"sales_price must be >= {SALE_PRICE_FLOOR}")
        if sale >= Decimal(self.price):
            raise ValueError("sales_price must be lower than price")
        return self

    @property
    def has_price(self) -> bool:
        return self.price is not None or self.sales_price is not None

    def to_record(self) -> dict[str, str | None]:
        """Export in the wire field names used by fixtures and summaries."""
        return {
            "FullName": self.full_name,
            "InternalArticle": self.business_key,
            "Price": self.price,
            "SalesPrice": self.sales_price,
        }
