"""
Commercial availability state.

Maps the three per-product inputs (merchandise id, quote flag, discontinued
flag) to exactly one AvailabilityState. Pure and total: no I/O, no failure
modes.

Precedence (highest first):
1. discontinued -> DISCONTINUED (never purchasable or quotable)
2. requires_quote -> QUOTE_ONLY (suppresses purchase even with a merchandise id)
3. non-empty merchandise id -> AVAILABLE
4. otherwise -> UNAVAILABLE
"""

from enum import Enum
from typing import Optional


class AvailabilityState(str, Enum):
    """Commercial state of a product at evaluation time."""
    AVAILABLE = "available"
    QUOTE_ONLY = "quote_only"
    UNAVAILABLE = "unavailable"
    DISCONTINUED = "discontinued"


def resolve_availability(
    merchandise_id: Optional[str] = None,
    requires_quote: Optional[bool] = None,
    discontinued: Optional[bool] = None,
) -> AvailabilityState:
    if discontinued:
        return AvailabilityState.DISCONTINUED
    if requires_quote:
        return AvailabilityState.QUOTE_ONLY
    if merchandise_id and merchandise_id.strip():
        return AvailabilityState.AVAILABLE
    return AvailabilityState.UNAVAILABLE


def can_add_to_cart(state: AvailabilityState) -> bool:
    """Single gate consulted before enabling any cart mutation."""
    return state == AvailabilityState.AVAILABLE
