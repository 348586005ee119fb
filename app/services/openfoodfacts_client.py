"""
Open Food Facts client.

Product lookup: GET /api/v0/product/{barcode}.json (status 0 means not found)
Search:         GET /cgi/search.pl?search_terms=...&json=1&page_size=N
"""

import logging
from typing import Optional

import httpx

from app.config import settings


logger = logging.getLogger(__name__)


class OpenFoodFactsClient:
    """Async client for product lookups and text search."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.openfoodfacts_base_url).rstrip("/")
        self._transport = transport

    async def _get_json(self, path: str, params: Optional[dict] = None) -> dict:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=settings.http_timeout,
                transport=self._transport,
                headers={"User-Agent": "smart-aisle/0.1"},
            ) as client:
                response = await client.get(path, params=params)
        except httpx.HTTPError as e:
            raise ProductLookupError(f"Open Food Facts request failed: {e}") from e

        if response.status_code != 200:
            raise ProductLookupError(
                f"Open Food Facts returned status {response.status_code}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise ProductLookupError("Open Food Facts returned invalid JSON") from e

    async def get_product(self, barcode: str) -> Optional[dict]:
        """
        Fetch the raw product record for a barcode.

        Returns:
            The upstream product dict, or None when the barcode is unknown

        Raises:
            ProductLookupError: Network/HTTP failure
        """
        logger.info("Fetching product %s from Open Food Facts", barcode)
        data = await self._get_json(f"/api/v0/product/{barcode}.json")
        if data.get("status") == 0 or not data.get("product"):
            return None
        return data["product"]

    async def search_products(self, query: str, page_size: int = 5) -> list[dict]:
        """
        Search products by free text.

        Raises:
            ProductLookupError: Network/HTTP failure
        """
        logger.info("Searching Open Food Facts for %r", query)
        data = await self._get_json(
            "/cgi/search.pl",
            {"search_terms": query, "json": 1, "page_size": page_size},
        )
        products = data.get("products")
        if not isinstance(products, list):
            return []
        return products


class ProductLookupError(Exception):
    """Open Food Facts lookup failed."""

    pass
