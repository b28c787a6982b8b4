"""
Catalog Module

PIM catalog + Shopify merchandise ids -> Product list with derived
availability.

Version: catalog_core_v1
"""

from .availability import AvailabilityState, resolve_availability, can_add_to_cart
from .models import PimEntry, Product
from .pim_source import PimSourceAdapter, FilePimSource, SourceUnavailable, get_pim_source
from .reconciler import CatalogReconciler, filter_products_for_node, count_by_level

__version__ = "catalog_core_v1"

__all__ = [
    "AvailabilityState",
    "resolve_availability",
    "can_add_to_cart",
    "PimEntry",
    "Product",
    "PimSourceAdapter",
    "FilePimSource",
    "SourceUnavailable",
    "get_pim_source",
    "CatalogReconciler",
    "filter_products_for_node",
    "count_by_level",
    "__version__",
]
