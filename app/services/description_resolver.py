"""
Ingredient description resolution.

Order of resolution, first hit wins:
1. per-(name, quality) cache
2. generated text (skipped while the generation quota guard is tripped)
3. curated description table (exact name, then substring)
4. generic sentence for the quality tier

Every path stores its result in the cache.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from app.config import settings
from app.models.ingredient import Ingredient, Quality
from app.services.cache import MemoryCache, QuotaGuard, is_quota_error


logger = logging.getLogger(__name__)


# Curated descriptions keyed by normalized name, then by bucket
CURATED_DESCRIPTIONS = {
    # Good
    "organic rolled oats": {
        "good": "Whole grain rich in beta-glucan fiber, which may help lower cholesterol and improve heart health. Contains important nutrients like manganese, phosphorus, and B vitamins.",
    },
    "organic quinoa": {
        "good": "Complete protein containing all nine essential amino acids. Rich in fiber, magnesium, B vitamins, iron, potassium, calcium, and beneficial antioxidants.",
    },
    "organic spinach": {
        "good": "Nutrient-dense leafy green high in vitamins A, C, K, folate, and minerals. Contains antioxidants that may reduce inflammation and support eye health.",
    },
    "extra virgin olive oil": {
        "good": "Rich in monounsaturated fats and antioxidants. Associated with reduced inflammation and lower risk of heart disease when used as part of a balanced diet.",
    },
    "avocado oil": {
        "good": "High in oleic acid, a heart-healthy monounsaturated fatty acid. Contains vitamin E and has a high smoke point, making it suitable for cooking.",
    },
    "apples": {
        "good": "Rich in dietary fiber, particularly pectin, which supports digestive health. Contains antioxidants like quercetin that may reduce inflammation and support heart health. Regular consumption is associated with lower risk of chronic diseases.",
    },
    # Moderate
    "cane sugar": {
        "moderate": "Less processed than refined white sugar, retaining some minerals, but still contributes to added sugar intake. Should be consumed in moderation.",
    },
    "honey": {
        "moderate": "Contains trace enzymes, antioxidants, and nutrients not found in refined sugar, but still impacts blood sugar levels and should be used sparingly.",
    },
    "sunflower oil": {
        "moderate": "High in vitamin E and unsaturated fats, but also contains omega-6 fatty acids which, when consumed in excess, may contribute to inflammation. Best used in moderation.",
    },
    "whole wheat flour": {
        "moderate": "Contains more fiber and nutrients than refined white flour, but still impacts blood sugar and may contain gluten, which some individuals need to avoid.",
    },
    # Poor
    "high fructose corn syrup": {
        "poor": "Highly processed sweetener linked to increased risk of obesity, type 2 diabetes, and metabolic syndrome when consumed regularly. Contains no essential nutrients.",
    },
    "hydrogenated oil": {
        "poor": "Contains trans fats, which raise LDL (bad) cholesterol, lower HDL (good) cholesterol, and increase risk of heart disease, stroke, and type 2 diabetes.",
    },
    "artificial flavor": {
        "poor": "Synthetic chemicals designed to mimic natural flavors. While FDA-regulated, some may cause adverse reactions in sensitive individuals.",
    },
    "natural flavor": {
        "poor": "A broad term that can include numerous compounds. While FDA-regulated, specific ingredients aren't required to be disclosed and may include additives of concern.",
    },
    "monosodium glutamate": {
        "poor": "Flavor enhancer that may cause adverse reactions in sensitive individuals, including headaches and flushing. Commonly used in processed foods.",
    },
    "red 40": {
        "poor": "Synthetic food dye linked to hyperactivity in some children. Derived from petroleum and provides no nutritional value.",
    },
    "sodium nitrite": {
        "poor": "Preservative used in processed meats that may form potentially carcinogenic compounds called nitrosamines when exposed to high heat.",
    },
    "flour": {
        "poor": "Conventional flour is typically treated with pesticides during cultivation and may undergo bleaching and chemical processing. Studies suggest that residues may remain in the final product, and the refining process removes many nutrients found in whole grains.",
    },
    "wheat flour": {
        "poor": "Conventional wheat flour is often treated with pesticides during cultivation and undergoes processing that removes beneficial nutrients. Research indicates that conventional wheat farming practices may contribute to soil degradation and reduced nutritional content.",
    },
    "unorganic flour": {
        "poor": "Conventional flour that may contain pesticide residues from non-organic farming practices. The refining process strips away fiber, vitamins, and minerals found in whole grains, resulting in a product with lower nutritional value.",
    },
    "unbleached flour": {
        "poor": "While not chemically bleached, conventional unbleached flour still comes from wheat that may be treated with pesticides. It undergoes processing that removes the nutrient-rich bran and germ portions of the grain.",
    },
}

QUALITY_BUCKETS = {
    Quality.VERY_GOOD: "good",
    Quality.GOOD: "good",
    Quality.NEUTRAL: "moderate",
    Quality.POOR: "poor",
    Quality.VERY_POOR: "poor",
}

GENERIC_DESCRIPTIONS = {
    Quality.VERY_GOOD: "Highly nutritious natural ingredient with significant health benefits.",
    Quality.GOOD: "Nutritious natural ingredient with beneficial properties.",
    Quality.NEUTRAL: "Generally harmless ingredient to be consumed in moderation.",
    Quality.POOR: "Ingredient that may have nutritional concerns or processing issues.",
    Quality.VERY_POOR: "Highly processed ingredient with significant health concerns.",
    Quality.UNKNOWN: "Ingredient with insufficient information to make a confident assessment.",
}

DescriptionGenerator = Callable[[str, str], Awaitable[str]]


def find_curated_description(name: str, quality: Quality) -> Optional[str]:
    """Look up the curated table: exact match first, then substring."""
    bucket = QUALITY_BUCKETS.get(quality)
    if bucket is None:
        return None

    normalized = Ingredient.normalize_name(name)
    exact = CURATED_DESCRIPTIONS.get(normalized, {}).get(bucket)
    if exact:
        return exact

    for key, descriptions in CURATED_DESCRIPTIONS.items():
        if key in normalized and bucket in descriptions:
            return descriptions[bucket]
    return None


def fallback_description(name: str, quality: Quality) -> str:
    return find_curated_description(name, quality) or GENERIC_DESCRIPTIONS[quality]


class DescriptionResolver:
    """Resolves a description for an (ingredient, quality) pair."""

    def __init__(
        self,
        generator: Optional[DescriptionGenerator] = None,
        cache: Optional[MemoryCache] = None,
        quota_guard: Optional[QuotaGuard] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        enabled: Optional[bool] = None,
    ):
        self.generator = generator
        self.cache = cache if cache is not None else MemoryCache.from_settings()
        self.quota_guard = quota_guard or QuotaGuard(
            "generation", cooldown_seconds=settings.quota_cooldown_seconds
        )
        self.max_retries = (
            settings.description_max_retries if max_retries is None else max_retries
        )
        self.retry_delay = (
            settings.description_retry_delay if retry_delay is None else retry_delay
        )
        self.enabled = settings.use_ai_descriptions if enabled is None else enabled

    async def resolve(self, name: str, quality: Quality) -> str:
        """
        Resolve a description for an ingredient at a given quality tier.

        Never raises: generation failures degrade to the curated table and
        then to the generic sentence for the tier.
        """
        normalized = Ingredient.normalize_name(name)
        key = (normalized, quality.value)

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        description = None
        if self.enabled and self.generator is not None and not self.quota_guard.exceeded:
            description = await self._generate(normalized, quality)

        if not description:
            description = fallback_description(normalized, quality)

        self.cache.set(key, description)
        return description

    async def _generate(self, normalized: str, quality: Quality) -> Optional[str]:
        last_error = None

        for attempt in range(self.max_retries + 1):
            if attempt > 0 and self.retry_delay:
                await asyncio.sleep(self.retry_delay * attempt)

            try:
                text = await self.generator(normalized, quality.value)
                text = (text or "").strip()
                if text:
                    return text
                last_error = ValueError("empty description")
            except Exception as e:
                last_error = e
                logger.warning(
                    "Description generation failed for %s (attempt %d/%d): %s",
                    normalized,
                    attempt + 1,
                    self.max_retries + 1,
                    e,
                )
                if is_quota_error(e):
                    logger.warning(
                        "Description quota exceeded, using fallback descriptions"
                    )
                    self.quota_guard.trip(str(e))
                    break

        logger.info(
            "Falling back to curated description for %s (last error: %s)",
            normalized,
            last_error,
        )
        return None

    def clear_cache(self) -> int:
        return self.cache.clear()
