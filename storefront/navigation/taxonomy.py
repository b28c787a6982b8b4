"""
Taxonomy Sources

Supply TaxonomyRow lists to the navigation indexer.

- PimTaxonomySource: derives rows from the PIM catalog (nav_root..nav_group_3)
- FeedTaxonomySource: reads a JSON nav feed of rows
  ({"SKU", "nav_root", "nav_group", "nav_group_1".."nav_group_3"})

Menu keys: the default menu ("main") is the whole catalog; any other key
selects the top-level category with that slug.
"""

import json
import logging
from typing import Any, List, Optional

import httpx

from storefront import config
from storefront.catalog.models import NAV_LEVEL_FIELDS
from storefront.catalog.pim_source import SourceUnavailable

from .builder import TaxonomyRow, clean_path
from .slug import slugify

logger = logging.getLogger(__name__)


def select_menu(rows: List[TaxonomyRow], menu_key: str) -> List[TaxonomyRow]:
    if menu_key == config.NAV_DEFAULT_MENU:
        return rows
    return [row for row in rows if row.path and slugify(row.path[0]) == menu_key]


class PimTaxonomySource:
    """Taxonomy derived from the PIM entries' navigation paths."""

    def __init__(self, pim_source):
        self.pim_source = pim_source

    async def fetch_taxonomy(self, menu_key: str) -> List[TaxonomyRow]:
        entries = await self.pim_source.fetch_catalog()
        rows = [TaxonomyRow(sku=e.sku, path=list(e.nav_path)) for e in entries if e.nav_path]
        return select_menu(rows, menu_key)


def sanitize_feed_rows(data: List[Any]) -> List[TaxonomyRow]:
    """Rows need a SKU plus nav_root and nav_group; others are dropped."""
    rows: List[TaxonomyRow] = []
    for raw in data:
        if not isinstance(raw, dict):
            continue
        sku = str(raw.get("SKU") or raw.get("sku") or "").strip()
        path = clean_path([raw.get(name) if isinstance(raw.get(name), str) else None for name in NAV_LEVEL_FIELDS])
        if not sku or len(path) < 2:
            continue
        rows.append(TaxonomyRow(sku=sku, path=path))
    return rows


class FeedTaxonomySource:
    """Remote JSON nav feed (a list of SKU rows)."""

    def __init__(
        self,
        url: str,
        timeout: float = config.PIM_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def fetch_taxonomy(self, menu_key: str) -> List[TaxonomyRow]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.url, headers={"Accept": "application/json"})
        except httpx.RequestError as e:
            raise SourceUnavailable(f"Nav feed request failed: {str(e)}")

        if not 200 <= response.status_code < 300:
            raise SourceUnavailable(
                f"Nav feed returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except json.JSONDecodeError:
            raise SourceUnavailable("Nav feed returned invalid JSON")
        if not isinstance(data, list):
            raise SourceUnavailable("Nav feed is not a list of rows")

        rows = sanitize_feed_rows(data)
        if len(rows) < len(data):
            logger.warning(f"[nav] dropped {len(data) - len(rows)} incomplete nav feed row(s)")
        return select_menu(rows, menu_key)
