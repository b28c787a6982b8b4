"""
SKU -> Merchandise Resolver

Batch-resolves Shopify variant GIDs (merchandise ids) for a set of SKUs.

- SKUs are trimmed and de-duplicated; blanks are ignored
- Requests are split into batches of SHOPIFY_SKU_BATCH_SIZE and run
  concurrently (bounded by SHOPIFY_MAX_CONCURRENCY)
- A SKU with no variant is NOT an error: it maps to None
- Any batch failing at transport level fails the whole call
  (ResolverUnavailable)
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

from storefront import config
from storefront.errors import StorefrontError

from .shopify_client import ShopifyAdminClient, ShopifyError, get_shopify_client

logger = logging.getLogger(__name__)

# Shopify caps `first` at 250 per connection page
MAX_PAGE_SIZE = 250

VARIANTS_BY_SKU_QUERY = """
query VariantsBySku($query: String!, $first: Int!, $after: String) {
  productVariants(first: $first, after: $after, query: $query) {
    pageInfo {
      hasNextPage
      endCursor
    }
    nodes {
      id
      sku
    }
  }
}
"""


class ResolverUnavailable(StorefrontError):
    """Merchandise-id lookup failed for the whole batch."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _quote_sku(sku: str) -> str:
    escaped = sku.replace("\\", "\\\\").replace('"', '\\"')
    return f'sku:"{escaped}"'


def build_sku_query(skus: List[str]) -> str:
    """Shopify search syntax matching any of the given SKUs."""
    return " OR ".join(_quote_sku(sku) for sku in skus)


def normalize_skus(skus: Iterable[Optional[str]]) -> List[str]:
    """Trim, drop blanks, de-duplicate; first-seen order is kept."""
    unique: Dict[str, None] = {}
    for sku in skus:
        key = (sku or "").strip()
        if key:
            unique.setdefault(key, None)
    return list(unique)


def chunk(items: List[str], size: int) -> List[List[str]]:
    size = max(1, size)
    return [items[i:i + size] for i in range(0, len(items), size)]


class SkuResolver:
    """Resolves SKUs against the Shopify Admin API."""

    def __init__(
        self,
        client: Optional[ShopifyAdminClient] = None,
        batch_size: int = config.SHOPIFY_SKU_BATCH_SIZE,
        max_concurrency: int = config.SHOPIFY_MAX_CONCURRENCY,
    ):
        self.client = client or get_shopify_client()
        self.batch_size = min(max(1, batch_size), MAX_PAGE_SIZE)
        self.max_concurrency = max(1, max_concurrency)
        self._stats: Dict[str, Any] = {
            "variant_count": 0,
            "sample_skus": [],
            "last_error": None,
            "status_code": None,
            "batches": 0,
        }

    @property
    def stats(self) -> Dict[str, Any]:
        """Diagnostics from the last resolve() call."""
        return dict(self._stats)

    async def _resolve_batch(self, batch: List[str], semaphore: asyncio.Semaphore) -> Dict[str, str]:
        wanted = set(batch)
        found: Dict[str, str] = {}
        cursor: Optional[str] = None

        async with semaphore:
            while True:
                data = await self.client.graphql(
                    VARIANTS_BY_SKU_QUERY,
                    {"query": build_sku_query(batch), "first": MAX_PAGE_SIZE, "after": cursor},
                )
                connection = data.get("productVariants") or {}
                for node in connection.get("nodes") or []:
                    sku = (node.get("sku") or "").strip()
                    variant_id = node.get("id")
                    # search is prefix-tolerant; keep exact matches only
                    if sku in wanted and variant_id and sku not in found:
                        found[sku] = variant_id

                page_info = connection.get("pageInfo") or {}
                if not page_info.get("hasNextPage") or not page_info.get("endCursor"):
                    break
                cursor = page_info["endCursor"]

        return found

    async def resolve(self, skus: Iterable[Optional[str]]) -> Dict[str, Optional[str]]:
        """
        Resolve merchandise ids for the given SKUs.

        Returns:
            Mapping with every requested (trimmed) SKU as a key; the value is
            the variant GID, or None when Shopify has no variant for it.

        Raises:
            ResolverUnavailable: if any batch request fails
        """
        unique = normalize_skus(skus)
        if not unique:
            return {}

        batches = chunk(unique, self.batch_size)
        semaphore = asyncio.Semaphore(self.max_concurrency)
        self._stats["batches"] = len(batches)

        tasks = [asyncio.ensure_future(self._resolve_batch(batch, semaphore)) for batch in batches]
        try:
            results = await asyncio.gather(*tasks)
        except ShopifyError as e:
            # the call has failed; stop the sibling batches
            for task in tasks:
                task.cancel()
            self._stats["last_error"] = str(e)
            self._stats["status_code"] = e.status_code
            logger.error(f"[sku-resolver] lookup failed for {len(unique)} SKUs: {e}")
            raise ResolverUnavailable(f"Merchandise lookup failed: {e}", status_code=e.status_code)

        merged: Dict[str, str] = {}
        for partial in results:
            merged.update(partial)

        self._stats.update({
            "variant_count": len(merged),
            "sample_skus": list(merged)[:10],
            "last_error": None,
            "status_code": 200,
        })

        missing = len(unique) - len(merged)
        if missing:
            logger.info(f"[sku-resolver] {missing}/{len(unique)} SKUs have no Shopify variant")

        return {sku: merged.get(sku) for sku in unique}

    async def resolve_one(self, sku: Optional[str]) -> Optional[str]:
        key = (sku or "").strip()
        if not key:
            return None
        result = await self.resolve([key])
        return result.get(key)
