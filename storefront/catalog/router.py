"""
Catalog Endpoints

Routes:
- GET /api/products - Product listing with availability
- GET /api/products/{sku} - Single product
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from storefront.integrations.sku_resolver import ResolverUnavailable
from storefront.navigation.slug import slugify
from storefront.services import get_reconciler

from .pim_source import SourceUnavailable
from .reconciler import SORT_KEYS, CatalogReconciler, count_by_level, filter_products_for_node

router = APIRouter(prefix="/api/products", tags=["Catalog"])


def catalog_unavailable(e: Exception) -> HTTPException:
    return HTTPException(
        status_code=503,
        detail={
            "error": "CATALOG_UNAVAILABLE",
            "source": "pim" if isinstance(e, SourceUnavailable) else "shopify",
            "message": str(e),
        },
    )


@router.get("")
async def list_products(
    sort: Optional[str] = Query(None, description="Reorder by sku, name or price"),
    node: Optional[str] = Query(None, description="Navigation slug, e.g. roofing/panels"),
    show_all: bool = Query(False, description="Include products below the node"),
    reconciler: CatalogReconciler = Depends(get_reconciler),
) -> Dict[str, Any]:
    if sort is not None and sort not in SORT_KEYS:
        raise HTTPException(status_code=400, detail=f"sort must be one of {sorted(SORT_KEYS)}")

    try:
        products = await reconciler.get_products(sort_by=sort)
    except (SourceUnavailable, ResolverUnavailable) as e:
        raise catalog_unavailable(e)

    segments = [s for s in (node or "").strip("/").split("/") if s]
    if segments:
        below = filter_products_for_node(products, segments, show_all=True, normalize=slugify)
        products = below if show_all else filter_products_for_node(below, segments, normalize=slugify)
    else:
        below = products

    return {
        "count": len(products),
        # sidebar counts for the level under the node (top level without one)
        "levels": count_by_level(below, len(segments)),
        "products": [p.model_dump(mode="json") for p in products],
    }


@router.get("/{sku}")
async def get_product(
    sku: str,
    reconciler: CatalogReconciler = Depends(get_reconciler),
) -> Dict[str, Any]:
    try:
        product = await reconciler.get_product(sku)
    except (SourceUnavailable, ResolverUnavailable) as e:
        raise catalog_unavailable(e)

    if product is None:
        raise HTTPException(status_code=404, detail=f"SKU not found: {sku}")
    return product.model_dump(mode="json")
