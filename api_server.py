"""
Storefront Catalog API Server
Catalog reconciliation, navigation index and product listing for the trade storefront.
Version 1.0.0
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront import __version__, config
from storefront.catalog.router import router as catalog_router
from storefront.errors import StorefrontError
from storefront.health.router import router as health_router
from storefront.navigation.router import admin_router as nav_admin_router
from storefront.navigation.router import router as nav_router

# ============================================
# Logging
# ============================================
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# ============================================
# App Configuration
# ============================================
app = FastAPI(
    title="Storefront Catalog API",
    description="PIM + Shopify catalog reconciliation and navigation index",
    version=__version__,
)

# ============================================
# CORS Configuration
# ============================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# ============================================
# Routers
# ============================================
app.include_router(nav_router)
app.include_router(nav_admin_router)
app.include_router(catalog_router)
app.include_router(health_router)


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    """Last-resort mapping for core errors a router did not translate."""
    logger.error(f"Unhandled {type(exc).__name__} on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": {"error": type(exc).__name__, "message": str(exc)}},
    )


@app.get("/")
def root():
    return {"service": "storefront-catalog", "version": __version__}
