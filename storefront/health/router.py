"""
Health Check Endpoint
=====================
Reports the configuration and cache state of the catalog core.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from storefront import __version__, config
from storefront.integrations.sku_resolver import SkuResolver
from storefront.navigation.indexer import NavigationIndexer
from storefront.services import get_navigation_indexer, get_pim, get_sku_resolver

router = APIRouter(prefix="/api/v1/health", tags=["Health"])


@router.get("")
def health(
    resolver: SkuResolver = Depends(get_sku_resolver),
    indexer: NavigationIndexer = Depends(get_navigation_indexer),
):
    """
    Component status. Never calls the PIM or Shopify; only reports what the
    process already knows.
    """
    cache = indexer.cache

    throttle = resolver.client.last_rate_limit
    rate_limit = None
    if throttle is not None:
        rate_limit = {
            "currently_available": throttle.currently_available,
            "maximum_available": throttle.maximum_available,
            "restore_rate": throttle.restore_rate,
            "utilization_pct": round(throttle.utilization_pct, 1),
        }

    menus = {}
    for key in cache.keys():
        entry = cache.peek(key)
        menus[key] = {
            "state": cache.state_of(key).value,
            "rebuilding": cache.is_rebuilding(key),
            "nodes": len(entry.data.slug_map) if entry else 0,
            "updated_at": entry.data.updated_at.isoformat() if entry else None,
        }

    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "components": {
            "pim": {"source": get_pim().kind},
            "shopify": {
                "configured": resolver.client.is_configured,
                "resolver": resolver.stats,
                "rate_limit": rate_limit,
            },
            "navigation": {
                "fresh_seconds": cache.fresh_seconds,
                "stale_seconds": cache.stale_seconds,
                "default_menu": config.NAV_DEFAULT_MENU,
                "menus": menus,
            },
        },
    }
