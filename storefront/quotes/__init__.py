"""Quote dispatch side channel for quote-only products."""

from .dispatch import (
    QuoteDispatchClient,
    QuoteDispatchResult,
    DispatchOutcome,
    SendQuoteResult,
    QuoteDispatchFailed,
    QuoteDispatchCancelled,
)

__all__ = [
    "QuoteDispatchClient",
    "QuoteDispatchResult",
    "DispatchOutcome",
    "SendQuoteResult",
    "QuoteDispatchFailed",
    "QuoteDispatchCancelled",
]
