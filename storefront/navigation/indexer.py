"""
Navigation Indexer

Serves the NavigationIndex for a menu through the NavigationCache
(fresh 600s, stale-while-revalidate 300s by default).

Usage:
    indexer = NavigationIndexer(PimTaxonomySource(pim), NavigationCache())
    index = await indexer.get_navigation_index("main")
    node = index.slug_map["roofing/panels"]
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from storefront import config
from storefront.errors import StorefrontError

from .builder import build_navigation
from .cache import NavigationCache
from .models import NavigationIndex, NavNode
from .slug import slugify

logger = logging.getLogger(__name__)

DEFAULT_ROOT_LABEL = "Products"


class UnknownMenu(StorefrontError):
    """Menu key matches no top-level category of the default menu."""

    def __init__(self, menu_key: str):
        super().__init__(f"Unknown navigation menu: {menu_key}")
        self.menu_key = menu_key


class NavigationIndexer:
    def __init__(self, taxonomy_source, cache: NavigationCache):
        self.taxonomy_source = taxonomy_source
        self.cache = cache

    def _normalize_key(self, menu_key: Optional[str]) -> str:
        return slugify(menu_key or "") or config.NAV_DEFAULT_MENU

    async def build_index(self, menu_key: str) -> NavigationIndex:
        """Build without touching the cache. Raises SlugCollision on bad data."""
        rows = await self.taxonomy_source.fetch_taxonomy(menu_key)
        subtree = None if menu_key == config.NAV_DEFAULT_MENU else menu_key
        tree, slug_map = build_navigation(
            rows,
            root_label=DEFAULT_ROOT_LABEL if subtree is None else menu_key,
            root_key=config.NAV_DEFAULT_MENU,
            subtree_slug=subtree,
        )
        logger.info(f"[nav] built '{menu_key}': {len(slug_map)} nodes from {len(rows)} rows")
        return NavigationIndex(
            menu_key=menu_key,
            tree=tree,
            slug_map=slug_map,
            updated_at=datetime.now(timezone.utc),
        )

    async def _resolve_key(self, menu_key: Optional[str]) -> str:
        """
        Normalized key of a known menu.

        Submenus must be a top-level slug of the default menu, so only a
        bounded set of keys ever reaches the cache.
        """
        key = self._normalize_key(menu_key)
        if key == config.NAV_DEFAULT_MENU:
            return key
        main = await self.get_navigation_index(config.NAV_DEFAULT_MENU)
        if key not in {child.slug for child in main.tree.children}:
            raise UnknownMenu(key)
        return key

    async def get_navigation_index(self, menu_key: Optional[str] = None) -> NavigationIndex:
        key = await self._resolve_key(menu_key)
        return await self.cache.get_or_build(key, lambda: self.build_index(key))

    async def lookup(self, slug: str, menu_key: Optional[str] = None) -> Optional[NavNode]:
        index = await self.get_navigation_index(menu_key)
        return index.slug_map.get(slug.strip("/"))

    async def refresh(self, menu_key: Optional[str] = None) -> NavigationIndex:
        key = await self._resolve_key(menu_key)
        return await self.cache.refresh(key, lambda: self.build_index(key))

    def invalidate(self, menu_key: Optional[str] = None) -> None:
        self.cache.invalidate(self._normalize_key(menu_key))

    def cache_control(self, client_max_age: int = config.NAV_CLIENT_MAX_AGE) -> str:
        """Cache-Control matching this indexer's own freshness windows."""
        return (
            f"public, max-age={client_max_age}, "
            f"s-maxage={int(self.cache.fresh_seconds)}, "
            f"stale-while-revalidate={int(self.cache.stale_seconds)}"
        )
