"""
Quote Dispatch Client
=====================
Asks the quote service to email the quote document for a quote number:

    POST {QUOTE_API_BASE_URL}/api/quotes/{quote_number}/send?e={email}

Every call may send an email, so nothing here retries. Timeouts are reported
as failures and left to the caller to confirm and retry.

Outcomes are returned as a QuoteDispatchResult (success | failed | cancelled);
`raise_for_outcome()` converts a non-success into QuoteDispatchFailed or
QuoteDispatchCancelled for callers that prefer exceptions.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from storefront import config
from storefront.errors import StorefrontError

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Failed to send quote"


class QuoteDispatchFailed(StorefrontError):
    """Quote endpoint answered with a non-success status (or never answered)."""

    def __init__(self, message: str = GENERIC_FAILURE, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class QuoteDispatchCancelled(StorefrontError):
    """The caller abandoned the dispatch."""
    pass


class DispatchOutcome(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


class SendQuoteResult(BaseModel):
    """Success body of the quote endpoint."""
    status: Optional[str] = None
    provider: Optional[str] = None


@dataclass
class QuoteDispatchResult:
    outcome: DispatchOutcome
    payload: Optional[SendQuoteResult] = None
    message: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.outcome is DispatchOutcome.SUCCESS

    def raise_for_outcome(self) -> SendQuoteResult:
        if self.outcome is DispatchOutcome.CANCELLED:
            raise QuoteDispatchCancelled(self.message or "Quote dispatch cancelled")
        if self.outcome is DispatchOutcome.FAILED:
            raise QuoteDispatchFailed(self.message or GENERIC_FAILURE, status_code=self.status_code)
        return self.payload or SendQuoteResult()


def _failed(message: str, status_code: Optional[int] = None) -> QuoteDispatchResult:
    return QuoteDispatchResult(DispatchOutcome.FAILED, message=message, status_code=status_code)


def _cancelled() -> QuoteDispatchResult:
    return QuoteDispatchResult(DispatchOutcome.CANCELLED, message="Quote dispatch cancelled")


def _read_body(response: httpx.Response) -> Dict[str, Any]:
    try:
        data = response.json() if response.content else {}
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


class QuoteDispatchClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = config.QUOTE_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or config.QUOTE_API_BASE_URL).rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def send_url(self, quote_number: str) -> str:
        return f"{self.base_url}/api/quotes/{quote(quote_number, safe='')}/send"

    async def _post(self, quote_number: str, email: str) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            return await client.post(self.send_url(quote_number), params={"e": email})

    async def _race(self, request: asyncio.Task, cancel_event: asyncio.Event) -> bool:
        """Wait for the request or the cancel signal; True if cancelled first."""
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({request, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
        return request not in done

    async def send_quote(
        self,
        quote_number: str,
        email: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> QuoteDispatchResult:
        """
        Request the quote email.

        Args:
            quote_number: Quote identifier (path-scoped)
            email: Recipient, must match the quote's email (query-scoped)
            cancel_event: Set it to abandon the in-flight request

        Returns:
            QuoteDispatchResult; never raises for HTTP or transport failures
        """
        quote_number = (quote_number or "").strip()
        email = (email or "").strip()
        if not quote_number or not email:
            return _failed("Quote number and email are required")

        if cancel_event is not None and cancel_event.is_set():
            return _cancelled()

        request = asyncio.ensure_future(self._post(quote_number, email))
        try:
            if cancel_event is not None and await self._race(request, cancel_event):
                logger.info(f"[quotes] dispatch of {quote_number} cancelled by caller")
                return _cancelled()
            response = await request
        except httpx.TimeoutException:
            logger.warning(f"[quotes] dispatch of {quote_number} timed out; outcome unknown")
            return _failed("Quote dispatch timed out; the email may still have been sent")
        except httpx.RequestError as e:
            logger.error(f"[quotes] dispatch of {quote_number} failed: {e}")
            return _failed(GENERIC_FAILURE)
        finally:
            if not request.done():
                request.cancel()

        data = _read_body(response)
        if not 200 <= response.status_code < 300:
            message = _as_str(data.get("error")) or GENERIC_FAILURE
            logger.warning(f"[quotes] dispatch of {quote_number} rejected ({response.status_code}): {message}")
            return _failed(message, status_code=response.status_code)

        return QuoteDispatchResult(
            DispatchOutcome.SUCCESS,
            payload=SendQuoteResult(status=_as_str(data.get("status")), provider=_as_str(data.get("provider"))),
            status_code=response.status_code,
        )
