"""
Catalog Models

Pydantic models for the normalized PIM record and the merged Product that
presentation layers consume.

Absent values are explicit Optionals (never sentinel strings): a missing
merchandise_id is a normal "not yet sellable" state, not an error.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from .availability import AvailabilityState, resolve_availability
from .availability import can_add_to_cart as _can_add_to_cart


# PIM column name -> taxonomy depth
NAV_LEVEL_FIELDS = ("nav_root", "nav_group", "nav_group_1", "nav_group_2", "nav_group_3")

_TRUE_STRINGS = {"true", "yes", "y", "1"}
_FALSE_STRINGS = {"false", "no", "n", "0", ""}


def _first_present(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _clean_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_flag(value: Any) -> Optional[bool]:
    """Parse a PIM flag; unknown spellings are treated as absent."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    return None


def _parse_price(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite():
        return None
    return price


class PimEntry(BaseModel):
    """A single PIM catalog row, normalized to canonical field names."""

    sku: str = Field(..., min_length=1, description="PIM-issued SKU, the join key")
    product_name: Optional[str] = None
    handle: Optional[str] = Field(None, description="Storefront slug, independent of sku")
    price: Optional[Decimal] = Field(None, description="Trade price; None when not published")
    requires_quote: Optional[bool] = None
    discontinued: Optional[bool] = None
    nav_path: List[str] = Field(
        default_factory=list,
        description="Taxonomy labels from nav_root down, stopping at the first gap",
    )

    @field_validator("sku", mode="before")
    @classmethod
    def strip_sku(cls, v):
        return str(v).strip() if v is not None else v

    @property
    def nav_group(self) -> Optional[str]:
        return self.nav_path[1] if len(self.nav_path) > 1 else None

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> Optional["PimEntry"]:
        """
        Normalize a raw PIM record. Accepts the export spellings seen in the
        PIM feeds (SKU/sku, product_name/name/title, price_trade_gbp/price).

        Returns None when the record has no usable SKU.
        """
        sku = _clean_str(_first_present(raw, "sku", "SKU"))
        if not sku:
            return None

        nav_path: List[str] = []
        for field_name in NAV_LEVEL_FIELDS:
            label = _clean_str(raw.get(field_name))
            if not label:
                break
            nav_path.append(label)

        return cls(
            sku=sku,
            product_name=_clean_str(_first_present(raw, "product_name", "name", "title")),
            handle=_clean_str(raw.get("handle")),
            price=_parse_price(_first_present(raw, "price_trade_gbp", "price")),
            requires_quote=_parse_flag(_first_present(raw, "requires_quote", "requiresQuote")),
            discontinued=_parse_flag(raw.get("discontinued")),
            nav_path=nav_path,
        )


class Product(BaseModel):
    """Canonical merged record: PIM attributes joined with the Shopify variant id."""

    sku: str
    name: str
    price: Optional[Decimal] = None
    handle: Optional[str] = None
    merchandise_id: Optional[str] = Field(
        None, description="Shopify variant GID; None until resolved"
    )
    requires_quote: Optional[bool] = None
    discontinued: Optional[bool] = None
    nav_path: List[str] = Field(default_factory=list)

    @computed_field
    @property
    def availability(self) -> AvailabilityState:
        return resolve_availability(
            merchandise_id=self.merchandise_id,
            requires_quote=self.requires_quote,
            discontinued=self.discontinued,
        )

    @computed_field
    @property
    def can_add_to_cart(self) -> bool:
        return _can_add_to_cart(self.availability)

    @classmethod
    def from_pim(cls, entry: PimEntry, merchandise_id: Optional[str]) -> "Product":
        # product name -> navigation group -> handle -> sku
        name = entry.product_name or entry.nav_group or entry.handle or entry.sku
        return cls(
            sku=entry.sku,
            name=name,
            price=entry.price,
            handle=entry.handle,
            merchandise_id=merchandise_id,
            requires_quote=entry.requires_quote,
            discontinued=entry.discontinued,
            nav_path=list(entry.nav_path),
        )
