"""
Navigation Module

Hierarchical category tree + flat slug map, served through a
stale-while-revalidate cache.

Version: navigation_index_v1
"""

from .models import NavNode, NavigationIndex, SlugMap
from .slug import slugify
from .builder import TaxonomyRow, SlugCollision, build_navigation
from .cache import NavigationCache, CacheState
from .taxonomy import PimTaxonomySource, FeedTaxonomySource
from .indexer import NavigationIndexer, UnknownMenu

__version__ = "navigation_index_v1"

__all__ = [
    "NavNode",
    "NavigationIndex",
    "SlugMap",
    "slugify",
    "TaxonomyRow",
    "SlugCollision",
    "build_navigation",
    "NavigationCache",
    "CacheState",
    "PimTaxonomySource",
    "FeedTaxonomySource",
    "NavigationIndexer",
    "UnknownMenu",
    "__version__",
]
