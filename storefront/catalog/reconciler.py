"""
Catalog Reconciler

Joins the PIM catalog with Shopify merchandise ids into the Product list
served to presentation layers.

PRINCIPLE: every PIM entry yields exactly one Product, in PIM order.
A SKU without a Shopify variant still appears, with merchandise_id = None.

Failure policy: SourceUnavailable and ResolverUnavailable propagate. A
resolver outage fails the whole fetch rather than marking every product
unavailable, which would misreport discontinued and quote-only items.
"""

import logging
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Sequence

from .models import PimEntry, Product

logger = logging.getLogger(__name__)


SORT_KEYS = {
    "sku": lambda p: p.sku,
    "name": lambda p: p.name.lower(),
    # unpriced products sort last
    "price": lambda p: (p.price is None, p.price if p.price is not None else Decimal(0)),
}


def join_products(entries: Sequence[PimEntry], merchandise: Dict[str, Optional[str]]) -> List[Product]:
    """Left-outer join from the PIM side on sku."""
    return [Product.from_pim(entry, merchandise.get(entry.sku)) for entry in entries]


class CatalogReconciler:
    """Composes a PIM source and a SKU resolver."""

    def __init__(self, pim_source, resolver):
        self.pim_source = pim_source
        self.resolver = resolver

    async def get_products(self, sort_by: Optional[str] = None) -> List[Product]:
        """
        Fetch and merge the catalog.

        Args:
            sort_by: Optional explicit reordering ("sku", "name", "price").
                     Default keeps the PIM's native order.

        Raises:
            SourceUnavailable: PIM fetch failed
            ResolverUnavailable: merchandise lookup failed
            ValueError: unknown sort_by
        """
        if sort_by is not None and sort_by not in SORT_KEYS:
            raise ValueError(f"Unknown sort key: {sort_by}")

        entries = await self.pim_source.fetch_catalog()
        skus = {entry.sku for entry in entries}
        merchandise = await self.resolver.resolve(skus) if skus else {}

        products = join_products(entries, merchandise)
        resolved = sum(1 for p in products if p.merchandise_id)
        logger.info(f"[catalog] reconciled {len(products)} products ({resolved} with merchandise ids)")

        if sort_by is not None:
            products = sorted(products, key=SORT_KEYS[sort_by])
        return products

    async def get_product(self, sku: str) -> Optional[Product]:
        key = (sku or "").strip()
        if not key:
            return None
        for product in await self.get_products():
            if product.sku == key:
                return product
        return None


def _is_blank(value: Optional[str]) -> bool:
    return not value or not value.strip()


def filter_products_for_node(
    products: Sequence[Product],
    nav_path: Sequence[str],
    show_all: bool = False,
    normalize: Optional[Callable[[str], str]] = None,
) -> List[Product]:
    """
    Products under a navigation node, identified by its label path.

    With show_all=False only products sitting exactly at the node (no deeper
    taxonomy level) are returned; show_all=True includes every descendant.
    `normalize` is applied to product labels before comparing, so a node can
    be addressed by its slug segments (normalize=slugify).
    """
    depth = len(nav_path)
    wanted = list(nav_path)

    def labels(product: Product) -> List[str]:
        head = product.nav_path[:depth]
        return [normalize(label) for label in head] if normalize else list(head)

    matched = [p for p in products if labels(p) == wanted]
    if show_all:
        return matched
    return [p for p in matched if len(p.nav_path) <= depth or _is_blank(p.nav_path[depth])]


def count_by_level(products: Sequence[Product], depth: int) -> Dict[str, int]:
    """Product counts per taxonomy label at the given depth (0 = root)."""
    counts: Dict[str, int] = {}
    for product in products:
        if len(product.nav_path) <= depth:
            continue
        label = product.nav_path[depth]
        counts[label] = counts.get(label, 0) + 1
    return counts
