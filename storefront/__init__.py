"""
Storefront Catalog Core

Fuses the PIM catalog with Shopify variant records, derives per-product
availability, serves the navigation index and dispatches quote emails.

Version: storefront_core_v1
"""

__version__ = "1.0.0"
