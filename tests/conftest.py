"""
Shared fakes for the catalog core tests.
"""

import os
import sys
from typing import Dict, Iterable, List, Optional

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from storefront.catalog.models import PimEntry
from storefront.integrations.sku_resolver import ResolverUnavailable


class FakePimSource:
    """In-memory PIM returning raw rows through the real normalizer."""

    kind = "fake"

    def __init__(self, rows: List[dict], error: Optional[Exception] = None):
        self.rows = rows
        self.error = error
        self.calls = 0

    async def fetch_catalog(self) -> List[PimEntry]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [PimEntry.from_raw(row) for row in self.rows]


class FakeResolver:
    """Resolver answering from a fixed SKU -> merchandise id mapping."""

    def __init__(self, mapping: Dict[str, str], fail: bool = False):
        self.mapping = mapping
        self.fail = fail
        self.requests: List[set] = []

    async def resolve(self, skus: Iterable[str]) -> Dict[str, Optional[str]]:
        requested = set(skus)
        self.requests.append(requested)
        if self.fail:
            raise ResolverUnavailable("Shopify unreachable")
        return {sku: self.mapping.get(sku) for sku in requested}


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog_rows():
    """Small catalog spanning two roots and three depths."""
    return [
        {"sku": "RP-1", "product_name": "Roof Panel", "nav_root": "Roofing", "nav_group": "Panels",
         "nav_group_1": "Insulated", "handle": "roof-panel", "price_trade_gbp": 84.5},
        {"sku": "RP-2", "nav_root": "Roofing", "nav_group": "Panels", "handle": "roof-panel-2"},
        {"sku": "RF-1", "product_name": "Ridge Flashing", "nav_root": "Roofing", "nav_group": "Flashings",
         "requires_quote": True},
        {"sku": "CL-1", "product_name": "Cladding Sheet", "nav_root": "Cladding", "nav_group": "Sheets",
         "discontinued": True},
    ]
