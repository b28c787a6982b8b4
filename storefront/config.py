"""
Storefront Configuration
========================
Environment-driven settings. Read once at import time.

Environment Variables:
- PIM_BASE_URL: PIM REST base URL (unset = read PIM_PRODUCTS_PATH instead)
- PIM_API_KEY: Bearer token for the PIM
- SHOPIFY_STORE_DOMAIN: e.g. trade-store.myshopify.com
- SHOPIFY_ADMIN_ACCESS_TOKEN: Admin API access token
- QUOTE_API_BASE_URL: Base URL of the quote service
- ADMIN_API_KEY: Key for admin endpoints (read on each admin request)
"""

import os
from pathlib import Path


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


BASE_DIR = Path(__file__).resolve().parent.parent

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ===== PIM =====

PIM_BASE_URL = os.getenv("PIM_BASE_URL", "").rstrip("/")
PIM_API_KEY = os.getenv("PIM_API_KEY", "")
PIM_PAGE_SIZE = _int_env("PIM_PAGE_SIZE", 100)
PIM_MAX_PAGES = _int_env("PIM_MAX_PAGES", 200)
PIM_TIMEOUT = _float_env("PIM_TIMEOUT", 30.0)
PIM_PRODUCTS_PATH = Path(
    os.getenv("PIM_PRODUCTS_PATH", str(BASE_DIR / "data" / "pim" / "pim_products.json"))
)

# ===== Shopify =====

SHOPIFY_STORE_DOMAIN = os.getenv("SHOPIFY_STORE_DOMAIN", "")
SHOPIFY_ADMIN_ACCESS_TOKEN = os.getenv("SHOPIFY_ADMIN_ACCESS_TOKEN", "")
SHOPIFY_ADMIN_API_VERSION = os.getenv("SHOPIFY_ADMIN_API_VERSION", "2024-01")
SHOPIFY_SKU_BATCH_SIZE = _int_env("SHOPIFY_SKU_BATCH_SIZE", 50)
SHOPIFY_MAX_CONCURRENCY = _int_env("SHOPIFY_MAX_CONCURRENCY", 4)

# ===== Quotes =====

QUOTE_API_BASE_URL = os.getenv("QUOTE_API_BASE_URL", "http://localhost:3000").rstrip("/")
QUOTE_TIMEOUT = _float_env("QUOTE_TIMEOUT", 30.0)

# ===== Navigation cache (seconds) =====

NAV_FRESH_SECONDS = _int_env("NAV_FRESH_SECONDS", 600)
NAV_STALE_SECONDS = _int_env("NAV_STALE_SECONDS", 300)
NAV_CLIENT_MAX_AGE = _int_env("NAV_CLIENT_MAX_AGE", 60)
NAV_DEFAULT_MENU = os.getenv("NAV_DEFAULT_MENU", "main")
# Optional remote nav feed; unset = derive the taxonomy from the PIM catalog
NAV_FEED_URL = os.getenv("NAV_FEED_URL", "")
