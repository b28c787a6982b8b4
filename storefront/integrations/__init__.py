"""Commerce-platform integrations (Shopify Admin API)."""

from .shopify_client import (
    ShopifyAdminClient,
    ShopifyError,
    ShopifyAuthError,
    ShopifyRateLimitError,
    ShopifyNotFoundError,
    get_shopify_client,
)
from .sku_resolver import SkuResolver, ResolverUnavailable

__all__ = [
    "ShopifyAdminClient",
    "ShopifyError",
    "ShopifyAuthError",
    "ShopifyRateLimitError",
    "ShopifyNotFoundError",
    "get_shopify_client",
    "SkuResolver",
    "ResolverUnavailable",
]
