"""
PIM Source Adapter
==================
Fetches the external product catalog and normalizes each row into a PimEntry.

Two sources share one contract (`async fetch_catalog() -> List[PimEntry]`):
- PimSourceAdapter: paginated REST listing on the PIM (PIM_BASE_URL)
- FilePimSource: local JSON export (PIM_PRODUCTS_PATH), for development

Transport failures never yield a partial catalog: the whole fetch raises
SourceUnavailable.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from storefront import config
from storefront.errors import StorefrontError

from .models import PimEntry

logger = logging.getLogger(__name__)


class SourceUnavailable(StorefrontError):
    """PIM fetch failed (transport error, timeout, 5xx, unreadable body)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def normalize_entries(rows: List[Any], source: str) -> List[PimEntry]:
    """
    Normalize raw rows, keeping PIM order.

    Rows missing optional fields are kept. Rows without a SKU cannot be keyed
    and are skipped with a warning.
    """
    entries: List[PimEntry] = []
    skipped = 0
    for row in rows:
        if not isinstance(row, dict):
            skipped += 1
            continue
        entry = PimEntry.from_raw(row)
        if entry is None:
            skipped += 1
            continue
        entries.append(entry)

    if skipped:
        logger.warning(f"[pim] skipped {skipped} row(s) without a SKU from {source}")
    return entries


def find_duplicate_handles(entries: List[PimEntry]) -> List[str]:
    """Case-insensitive handles that appear on more than one entry."""
    seen = set()
    duplicates: List[str] = []
    for entry in entries:
        key = (entry.handle or "").lower()
        if not key:
            continue
        if key in seen and key not in duplicates:
            duplicates.append(key)
        seen.add(key)
    return duplicates


class PimSourceAdapter:
    """
    REST client for the PIM product listing.

    Pages through `GET {base_url}/products?page=N&limit=M` until a short or
    empty page, or until the response stops advertising a `next` page.
    Accepts either a bare JSON list or an object with `products`/`data`.
    """

    kind = "http"

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        page_size: int = config.PIM_PAGE_SIZE,
        max_pages: int = config.PIM_MAX_PAGES,
        timeout: float = config.PIM_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or config.PIM_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else config.PIM_API_KEY
        self.page_size = max(1, page_size)
        self.max_pages = max(1, max_pages)
        self.timeout = timeout
        self._transport = transport

        if not self.base_url:
            logger.warning("PIM_BASE_URL not configured")

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @staticmethod
    def _extract_page(body: Any) -> tuple:
        """Return (rows, has_next) from a listing response body."""
        if isinstance(body, list):
            return body, None
        if isinstance(body, dict):
            rows = body.get("products")
            if rows is None:
                rows = body.get("data")
            if isinstance(rows, list):
                has_next = body.get("next")
                return rows, (bool(has_next) if "next" in body else None)
        raise SourceUnavailable("PIM returned an unexpected listing body")

    async def _fetch_page(self, client: httpx.AsyncClient, page: int) -> Any:
        try:
            response = await client.get(
                f"{self.base_url}/products",
                params={"page": page, "limit": self.page_size},
                headers=self._get_headers(),
            )
        except httpx.TimeoutException:
            logger.error(f"[pim] timeout fetching page {page}")
            raise SourceUnavailable(f"PIM request timed out on page {page}")
        except httpx.RequestError as e:
            logger.error(f"[pim] transport error on page {page}: {e}")
            raise SourceUnavailable(f"PIM request failed: {str(e)}")

        if not 200 <= response.status_code < 300:
            logger.error(f"[pim] page {page} returned HTTP {response.status_code}")
            raise SourceUnavailable(
                f"PIM returned HTTP {response.status_code} on page {page}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except json.JSONDecodeError:
            raise SourceUnavailable(f"PIM returned invalid JSON on page {page}")

    async def fetch_catalog(self) -> List[PimEntry]:
        if not self.base_url:
            raise SourceUnavailable("PIM source not configured. Set PIM_BASE_URL.")

        rows: List[Any] = []
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for page in range(1, self.max_pages + 1):
                body = await self._fetch_page(client, page)
                page_rows, has_next = self._extract_page(body)
                rows.extend(page_rows)

                if has_next is False or not page_rows:
                    break
                if has_next is None and len(page_rows) < self.page_size:
                    break
            else:
                # the listing never signalled its end; a truncated catalog is not served
                logger.error(f"[pim] catalog still paging after max_pages={self.max_pages}")
                raise SourceUnavailable(f"PIM catalog exceeds max_pages={self.max_pages}")

        entries = normalize_entries(rows, source=self.base_url)
        logger.info(f"[pim] fetched {len(entries)} entries from {self.base_url}")
        return entries


class FilePimSource:
    """Local JSON export of the PIM (a list of product rows)."""

    kind = "file"

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path or config.PIM_PRODUCTS_PATH)

    async def fetch_catalog(self) -> List[PimEntry]:
        try:
            raw = self.path.read_text(encoding="utf-8")
            parsed = json.loads(raw)
        except FileNotFoundError:
            raise SourceUnavailable(f"PIM export not found: {self.path}")
        except (OSError, json.JSONDecodeError) as e:
            raise SourceUnavailable(f"PIM export unreadable: {self.path}: {e}")

        if not isinstance(parsed, list):
            raise SourceUnavailable(f"PIM export is not a list: {self.path}")

        entries = normalize_entries(parsed, source=str(self.path))
        duplicates = find_duplicate_handles(entries)
        if duplicates:
            logger.warning(f"[pim] duplicate handles detected in {self.path.name}: {duplicates}")
        return entries


def get_pim_source():
    """HTTP adapter when PIM_BASE_URL is set, otherwise the local export."""
    if config.PIM_BASE_URL:
        return PimSourceAdapter()
    return FilePimSource()
