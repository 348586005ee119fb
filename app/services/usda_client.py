"""
USDA FoodData Central client.

API guide: https://fdc.nal.usda.gov/api-guide.html
Responses are cached per query/id for the process lifetime (or the
configured TTL).
"""

import logging
from typing import Optional

import httpx

from app.config import settings
from app.services.cache import MemoryCache


logger = logging.getLogger(__name__)

SEARCH_DATA_TYPES = "Foundation,SR Legacy,Survey (FNDDS)"
DETAIL_NUTRIENT_CODES = "203,204,205,208,269,291,301,303,304,305,306,307,318,401,601,605,606"


class USDAClient:
    """Async client for food search and per-food nutrient details."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        cache: Optional[MemoryCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.usda_base_url).rstrip("/")
        self.api_key = api_key or settings.usda_api_key
        self.cache = cache if cache is not None else MemoryCache.from_settings()
        self._transport = transport

    async def _get(self, path: str, params: dict) -> dict:
        params = {"api_key": self.api_key, **params}
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=settings.http_timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(path, params=params)
        except httpx.HTTPError as e:
            raise NutrientLookupError(f"USDA request failed: {e}") from e

        if response.status_code == 429:
            raise NutrientLookupError(
                "USDA rate limit exceeded", quota_exceeded=True
            )
        if response.status_code != 200:
            raise NutrientLookupError(f"USDA API error: {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise NutrientLookupError("USDA returned invalid JSON") from e

    async def search_foods(self, query: str, page_size: int = 5) -> list[dict]:
        """
        Search foods by name.

        Returns:
            Ranked list of raw food records (best match first)

        Raises:
            NutrientLookupError: Network/HTTP failure or rate limit
        """
        cache_key = f"search:{query}:{page_size}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("Using cached USDA search results for %r", query)
            return cached

        logger.info("Searching USDA database for %r", query)
        data = await self._get(
            "/foods/search",
            {"query": query, "pageSize": page_size, "dataType": SEARCH_DATA_TYPES},
        )
        foods = data.get("foods") or []
        self.cache.set(cache_key, foods)
        return foods

    async def get_food_details(self, fdc_id) -> dict:
        """
        Fetch nutrient details for one food.

        Raises:
            NutrientLookupError: Network/HTTP failure or rate limit
        """
        cache_key = f"details:{fdc_id}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        logger.info("Fetching USDA food details for id %s", fdc_id)
        data = await self._get(f"/food/{fdc_id}", {"nutrients": DETAIL_NUTRIENT_CODES})
        self.cache.set(cache_key, data)
        return data

    def clear_cache(self) -> int:
        return self.cache.clear()


class NutrientLookupError(Exception):
    """USDA lookup failed."""

    def __init__(self, message: str, quota_exceeded: bool = False):
        super().__init__(message)
        self.is_quota_error = quota_exceeded
