"""
Storefront error hierarchy.

Each concrete error lives beside the code that raises it; this module only
holds the shared base so routers can catch the whole family.
"""


class StorefrontError(Exception):
    """Base exception for catalog, navigation and quote errors."""
    pass
