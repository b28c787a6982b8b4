"""
Service Wiring

Process-wide singletons shared by the routers. The navigation cache is
created here once and handed to the indexer explicitly.

Usage:
    from storefront.services import get_reconciler, get_navigation_indexer

    products = await get_reconciler().get_products()
"""

from typing import Optional

from storefront import config
from storefront.catalog.pim_source import get_pim_source
from storefront.catalog.reconciler import CatalogReconciler
from storefront.integrations.shopify_client import get_shopify_client
from storefront.integrations.sku_resolver import SkuResolver
from storefront.navigation.cache import NavigationCache
from storefront.navigation.indexer import NavigationIndexer
from storefront.navigation.taxonomy import FeedTaxonomySource, PimTaxonomySource

_pim_source = None
_resolver: Optional[SkuResolver] = None
_reconciler: Optional[CatalogReconciler] = None
_indexer: Optional[NavigationIndexer] = None


def get_pim():
    global _pim_source
    if _pim_source is None:
        _pim_source = get_pim_source()
    return _pim_source


def get_sku_resolver() -> SkuResolver:
    global _resolver
    if _resolver is None:
        _resolver = SkuResolver(client=get_shopify_client())
    return _resolver


def get_reconciler() -> CatalogReconciler:
    global _reconciler
    if _reconciler is None:
        _reconciler = CatalogReconciler(get_pim(), get_sku_resolver())
    return _reconciler


def get_navigation_indexer() -> NavigationIndexer:
    global _indexer
    if _indexer is None:
        if config.NAV_FEED_URL:
            source = FeedTaxonomySource(config.NAV_FEED_URL)
        else:
            source = PimTaxonomySource(get_pim())
        _indexer = NavigationIndexer(source, NavigationCache())
    return _indexer
