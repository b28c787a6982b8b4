"""
Shopify Admin API Client
========================
Async access to the Shopify Admin GraphQL API, used for SKU -> variant
(merchandise id) resolution.

Environment Variables Required:
- SHOPIFY_STORE_DOMAIN: e.g. trade-store.myshopify.com
- SHOPIFY_ADMIN_ACCESS_TOKEN: Admin API access token
- SHOPIFY_ADMIN_API_VERSION: API version (default 2024-01)

Usage:
    from storefront.integrations.shopify_client import get_shopify_client

    client = get_shopify_client()
    data = await client.graphql(query, {"after": None})
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from storefront import config

logger = logging.getLogger(__name__)


class ShopifyError(Exception):
    """Base exception for Shopify API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, response_body: Optional[Dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class ShopifyAuthError(ShopifyError):
    """Authentication/authorization error (401/403)."""
    pass


class ShopifyRateLimitError(ShopifyError):
    """Rate limit exceeded (429 or GraphQL THROTTLED)."""

    def __init__(self, message: str, retry_after: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class ShopifyNotFoundError(ShopifyError):
    """Resource not found (404)."""
    pass


@dataclass
class RateLimitInfo:
    """GraphQL cost budget reported in `extensions.cost.throttleStatus`."""
    currently_available: float
    maximum_available: float
    restore_rate: float

    @property
    def utilization_pct(self) -> float:
        if self.maximum_available <= 0:
            return 0
        used = self.maximum_available - self.currently_available
        return used / self.maximum_available * 100


def _normalize_domain(domain: str) -> str:
    domain = domain.strip().rstrip("/")
    for prefix in ("https://", "http://"):
        if domain.startswith(prefix):
            domain = domain[len(prefix):]
    return domain


class ShopifyAdminClient:
    """
    Shopify Admin GraphQL client.

    Features:
    - Automatic retry on rate limits (up to 3 attempts)
    - Structured error handling
    - Throttle-budget tracking
    """

    DEFAULT_TIMEOUT = 30.0
    MAX_RETRIES = 3
    RETRY_BACKOFF = 2.0  # seconds

    def __init__(
        self,
        store_domain: Optional[str] = None,
        access_token: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.store_domain = _normalize_domain(store_domain or config.SHOPIFY_STORE_DOMAIN)
        self.access_token = access_token or config.SHOPIFY_ADMIN_ACCESS_TOKEN
        self.api_version = api_version or config.SHOPIFY_ADMIN_API_VERSION
        self.timeout = timeout
        self._transport = transport
        self._last_rate_limit: Optional[RateLimitInfo] = None

        if not self.store_domain:
            logger.warning("SHOPIFY_STORE_DOMAIN not configured")
        if not self.access_token:
            logger.warning("SHOPIFY_ADMIN_ACCESS_TOKEN not configured")

    @property
    def is_configured(self) -> bool:
        return bool(self.store_domain and self.access_token)

    @property
    def endpoint(self) -> str:
        return f"https://{self.store_domain}/admin/api/{self.api_version}/graphql.json"

    @property
    def last_rate_limit(self) -> Optional[RateLimitInfo]:
        return self._last_rate_limit

    def _get_headers(self) -> Dict[str, str]:
        return {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _parse_throttle(self, body: Dict[str, Any]) -> Optional[RateLimitInfo]:
        status = (((body.get("extensions") or {}).get("cost") or {}).get("throttleStatus")) or {}
        try:
            return RateLimitInfo(
                currently_available=float(status["currentlyAvailable"]),
                maximum_available=float(status["maximumAvailable"]),
                restore_rate=float(status["restoreRate"]),
            )
        except (KeyError, TypeError, ValueError):
            return None

    def _handle_response(self, response: httpx.Response) -> Dict[str, Any]:
        """Handle response and raise appropriate exceptions."""
        try:
            body = response.json() if response.content else {}
        except json.JSONDecodeError:
            body = {"raw": response.text}

        if not isinstance(body, dict):
            body = {"raw": body}

        if response.status_code in (401, 403):
            raise ShopifyAuthError(
                f"Access denied ({response.status_code}): {body.get('errors', body)}",
                status_code=response.status_code,
                response_body=body,
            )

        if response.status_code == 404:
            raise ShopifyNotFoundError(
                f"Resource not found: {self.endpoint}",
                status_code=404,
                response_body=body,
            )

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise ShopifyRateLimitError(
                "Rate limit exceeded",
                retry_after=float(retry_after) if retry_after else None,
                status_code=429,
                response_body=body,
            )

        if not 200 <= response.status_code < 300:
            raise ShopifyError(
                f"Shopify API error ({response.status_code}): {body.get('errors', body)}",
                status_code=response.status_code,
                response_body=body,
            )

        self._last_rate_limit = self._parse_throttle(body)

        errors = body.get("errors")
        if errors:
            codes = {
                (err.get("extensions") or {}).get("code")
                for err in errors if isinstance(err, dict)
            }
            if "THROTTLED" in codes:
                raise ShopifyRateLimitError(
                    "GraphQL query throttled",
                    status_code=response.status_code,
                    response_body=body,
                )
            raise ShopifyError(
                f"GraphQL errors: {errors}",
                status_code=response.status_code,
                response_body=body,
            )

        return body.get("data") or {}

    async def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Run an Admin GraphQL query with retry on throttling.

        Returns:
            The `data` object of the response

        Raises:
            ShopifyError (or subclass) on any failure
        """
        if not self.is_configured:
            raise ShopifyError(
                "Shopify client not configured. Set SHOPIFY_STORE_DOMAIN and SHOPIFY_ADMIN_ACCESS_TOKEN."
            )

        payload = {"query": query, "variables": variables or {}}

        for attempt in range(self.MAX_RETRIES):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await client.post(self.endpoint, headers=self._get_headers(), json=payload)
                    return self._handle_response(response)

            except ShopifyRateLimitError as e:
                if attempt < self.MAX_RETRIES - 1:
                    wait_time = e.retry_after or (self.RETRY_BACKOFF * (attempt + 1))
                    logger.warning(f"Rate limited, waiting {wait_time}s (attempt {attempt + 1}/{self.MAX_RETRIES})")
                    await asyncio.sleep(wait_time)
                else:
                    raise
            except httpx.TimeoutException:
                if attempt < self.MAX_RETRIES - 1:
                    logger.warning(f"Request timeout, retrying (attempt {attempt + 1}/{self.MAX_RETRIES})")
                    await asyncio.sleep(self.RETRY_BACKOFF)
                else:
                    raise ShopifyError(f"Request timeout after {self.MAX_RETRIES} attempts")
            except httpx.RequestError as e:
                raise ShopifyError(f"Request failed: {str(e)}")

        raise ShopifyError("Shopify request retries exhausted")


# Singleton instance
_client: Optional[ShopifyAdminClient] = None


def get_shopify_client() -> ShopifyAdminClient:
    """Get singleton Shopify client instance."""
    global _client
    if _client is None:
        _client = ShopifyAdminClient()
    return _client
