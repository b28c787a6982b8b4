"""
Navigation Endpoints

Routes:
- GET  /api/nav - Navigation index {updated_at, tree, slug_map}
- GET  /api/nav/lookup/{slug} - One node by slug
- POST /api/v1/admin/nav/{menu_key}/refresh - Forced rebuild (admin key)
"""

import os
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse

from storefront.catalog.pim_source import SourceUnavailable
from storefront.services import get_navigation_indexer

from .builder import SlugCollision
from .indexer import NavigationIndexer, UnknownMenu

router = APIRouter(prefix="/api/nav", tags=["Navigation"])
admin_router = APIRouter(prefix="/api/v1/admin/nav", tags=["admin", "navigation"])


def verify_admin_key(x_admin_api_key: str = Header(None, alias="X-Admin-API-Key")) -> str:
    """
    Verify admin API key from header.

    Raises 401 if missing or invalid.
    """
    expected_key = os.environ.get("ADMIN_API_KEY")

    if not expected_key:
        # Fail open in dev if ADMIN_API_KEY not set
        return "dev_mode"

    if not x_admin_api_key:
        raise HTTPException(status_code=401, detail="Missing X-Admin-API-Key header")

    if x_admin_api_key != expected_key:
        raise HTTPException(status_code=401, detail="Invalid X-Admin-API-Key")

    return x_admin_api_key


def nav_error(e: Exception) -> HTTPException:
    if isinstance(e, UnknownMenu):
        return HTTPException(
            status_code=404,
            detail={"error": "NAV_MENU_NOT_FOUND", "menu_key": e.menu_key, "message": str(e)},
        )
    if isinstance(e, SlugCollision):
        return HTTPException(
            status_code=500,
            detail={"error": "NAV_SLUG_COLLISION", "slug": e.slug, "message": str(e)},
        )
    return HTTPException(
        status_code=503,
        detail={"error": "NAV_SOURCE_UNAVAILABLE", "message": str(e)},
    )


@router.get("")
async def get_navigation(
    menu: Optional[str] = Query(None, description="Menu key; defaults to the whole catalog"),
    indexer: NavigationIndexer = Depends(get_navigation_indexer),
) -> JSONResponse:
    try:
        index = await indexer.get_navigation_index(menu)
    except (SlugCollision, SourceUnavailable, UnknownMenu) as e:
        raise nav_error(e)

    return JSONResponse(
        content=index.to_payload(),
        headers={"Cache-Control": indexer.cache_control()},
    )


@router.get("/lookup/{slug:path}")
async def lookup_node(
    slug: str,
    menu: Optional[str] = Query(None),
    indexer: NavigationIndexer = Depends(get_navigation_indexer),
) -> Dict[str, Any]:
    try:
        node = await indexer.lookup(slug, menu)
    except (SlugCollision, SourceUnavailable, UnknownMenu) as e:
        raise nav_error(e)

    if node is None:
        raise HTTPException(status_code=404, detail=f"Navigation node not found: {slug}")
    return node.model_dump(mode="json")


@admin_router.post("/{menu_key}/refresh")
async def refresh_navigation(
    menu_key: str,
    admin_key: str = Depends(verify_admin_key),
    indexer: NavigationIndexer = Depends(get_navigation_indexer),
) -> Dict[str, Any]:
    try:
        index = await indexer.refresh(menu_key)
    except (SlugCollision, SourceUnavailable, UnknownMenu) as e:
        raise nav_error(e)

    return {
        "status": "rebuilt",
        "menu_key": index.menu_key,
        "nodes": len(index.slug_map),
        "updated_at": index.updated_at.isoformat(),
    }
