"""
Ingredient quality analysis from USDA nutrient data.

Flow per ingredient:
1. Quick hazard check: highly processed terms are "poor" without a lookup
2. Search USDA (3 candidates), fetch details for the best match
3. Build a NutrientProfile, derive concerns/benefits and a processing level
4. Tier on the five-grade scale, then apply the organic nudge

No match or a failed lookup degrades to a term-based fallback. A quota-class
failure trips the nutrient quota guard so later ingredients skip USDA.
"""

import logging
from typing import Optional

from app.config import settings
from app.models.ingredient import (
    Ingredient,
    IngredientAnalysis,
    NutrientProfile,
    ProcessingLevel,
    Quality,
)
from app.services.cache import MemoryCache, QuotaGuard, is_quota_error
from app.services.ingredient_analyzer import (
    ORGANIC_NOTE,
    QUALITY_DESCRIPTIONS,
    IngredientClassifier,
    detect_organic,
    evaluate_criteria,
)
from app.services.usda_client import NutrientLookupError, USDAClient


logger = logging.getLogger(__name__)


NUTRIENT_FIELDS = {
    208: "calories",
    203: "protein",
    204: "fat",
    606: "saturated_fat",
    605: "trans_fat",
    205: "carbs",
    269: "sugar",
    291: "fiber",
    307: "sodium",
}
VITAMIN_CODES = {401: "C", 318: "A"}
MINERAL_CODES = {
    301: "calcium",
    303: "iron",
    304: "magnesium",
    305: "phosphorus",
    306: "potassium",
}

ADDITIVE_TERMS = [
    "artificial",
    "flavor",
    "color",
    "dye",
    "preservative",
    "sweetener",
    "emulsifier",
    "stabilizer",
    "thickener",
    "msg",
    "nitrate",
    "nitrite",
    "bha",
    "bht",
]

HIGHLY_PROCESSED_TERMS = [
    "hydrogenated",
    "high fructose corn syrup",
    "artificial flavor",
    "artificial color",
    "msg",
    "sodium nitrate",
    "sodium nitrite",
    "bha",
    "bht",
    "tbhq",
    "propyl gallate",
    "potassium bromate",
    "brominated",
    "interesterified",
    "partially hydrogenated",
]

HIGH_PROCESSING_CUES = [
    "hydrogenated",
    "hydrolyzed",
    "isolate",
    "modified",
    "extract",
    "concentrate",
    "refined",
    "bleached",
    "enriched",
    "fortified",
    "artificial",
    "processed",
]
MINIMAL_PROCESSING_CUES = ["fresh", "raw", "whole", "natural", "pure", "unprocessed", "organic"]

FALLBACK_CONCERN_TERMS = {
    "artificial": "contains artificial ingredients",
    "flavor": "may contain undisclosed compounds",
    "color": "contains food coloring",
    "dye": "contains synthetic dyes",
    "syrup": "may contain added sugars",
    "sugar": "contains added sugar",
    "hydrogenated": "contains trans fats",
    "modified": "highly processed",
    "msg": "contains flavor enhancer",
    "sodium nitrate": "contains preservatives linked to health concerns",
    "sodium nitrite": "contains preservatives linked to health concerns",
}
FALLBACK_BENEFIT_TERMS = {
    "whole grain": "contains whole grains",
    "whole wheat": "contains whole grains",
    "fiber": "source of dietary fiber",
    "protein": "source of protein",
    "vitamin": "contains vitamins",
    "mineral": "contains minerals",
    "antioxidant": "contains antioxidants",
    "probiotic": "contains beneficial bacteria",
    "omega-3": "contains healthy fats",
}

ORGANIC_NUDGE = {
    Quality.VERY_POOR: Quality.POOR,
    Quality.POOR: Quality.NEUTRAL,
    Quality.NEUTRAL: Quality.GOOD,
}
FALLBACK_ORGANIC_NUDGE = {
    Quality.NEUTRAL: Quality.GOOD,
    Quality.GOOD: Quality.VERY_GOOD,
    Quality.POOR: Quality.NEUTRAL,
}


def extract_nutrient_profile(food: dict, details: Optional[dict] = None) -> NutrientProfile:
    """Map USDA nutrient codes onto a NutrientProfile."""
    values = {}
    vitamins = {}
    minerals = {}

    nutrient_rows = (details or {}).get("foodNutrients") or food.get("foodNutrients") or []
    for row in nutrient_rows:
        nested = row.get("nutrient") or {}
        # Legacy nutrient numbers ("208") first; ids are only a fallback
        code = (
            row.get("nutrientNumber")
            or nested.get("number")
            or row.get("nutrientId")
            or nested.get("id")
        )
        try:
            code = int(code)
        except (TypeError, ValueError):
            continue

        value = row.get("value")
        if value is None:
            value = row.get("amount")
        value = float(value or 0)

        if code in NUTRIENT_FIELDS:
            values[NUTRIENT_FIELDS[code]] = value
        elif code in VITAMIN_CODES:
            vitamins[VITAMIN_CODES[code]] = value
        elif code in MINERAL_CODES:
            minerals[MINERAL_CODES[code]] = value

    description = (food.get("description") or "").lower()
    additives = [term for term in ADDITIVE_TERMS if term in description]

    return NutrientProfile(
        **values, vitamins=vitamins, minerals=minerals, additives=additives
    )


def determine_processing_level(name: str, food: dict) -> ProcessingLevel:
    description = (food.get("description") or "").lower()
    if any(term in name or term in description for term in HIGH_PROCESSING_CUES):
        return ProcessingLevel.HIGH
    if any(term in name or term in description for term in MINIMAL_PROCESSING_CUES):
        return ProcessingLevel.MINIMAL
    return ProcessingLevel.MODERATE


def evaluate_nutrients(
    nutrients: NutrientProfile,
    processing_level: ProcessingLevel,
    is_organic: bool,
) -> tuple[Quality, list[str], list[str]]:
    """
    Derive a quality tier plus concerns and benefits from a nutrient profile.

    Returns:
        (quality, concerns, benefits)
    """
    concerns = []
    benefits = []

    if nutrients.sugar and nutrients.sugar > 10:
        concerns.append("high sugar content")
    if nutrients.sodium and nutrients.sodium > 400:
        concerns.append("high sodium content")
    if nutrients.saturated_fat and nutrients.saturated_fat > 5:
        concerns.append("high saturated fat")
    if nutrients.trans_fat and nutrients.trans_fat > 0:
        concerns.append("contains trans fats")
    if nutrients.additives:
        concerns.append(f"contains additives: {', '.join(nutrients.additives)}")

    if nutrients.fiber and nutrients.fiber > 3:
        benefits.append("good source of fiber")
    if nutrients.protein and nutrients.protein > 5:
        benefits.append("good source of protein")
    if nutrients.vitamins:
        benefits.append("contains essential vitamins")
    if nutrients.minerals:
        benefits.append("contains essential minerals")

    high = processing_level == ProcessingLevel.HIGH
    minimal = processing_level == ProcessingLevel.MINIMAL

    if high and len(concerns) > 2:
        quality = Quality.VERY_POOR
    elif high or len(concerns) > 1:
        quality = Quality.POOR
    elif minimal and len(benefits) > 1:
        quality = Quality.VERY_GOOD if is_organic else Quality.GOOD
    elif benefits:
        quality = Quality.GOOD
    else:
        quality = Quality.NEUTRAL

    if is_organic:
        if quality in ORGANIC_NUDGE:
            quality = ORGANIC_NUDGE[quality]
        elif quality == Quality.GOOD and minimal:
            quality = Quality.VERY_GOOD

    return quality, concerns, benefits


def build_description(
    quality: Quality,
    processing_level: Optional[ProcessingLevel],
    is_organic: bool,
    concerns: list[str],
    benefits: list[str],
) -> str:
    description = QUALITY_DESCRIPTIONS[quality]
    if processing_level == ProcessingLevel.MINIMAL:
        description += " Minimally processed."
    elif processing_level == ProcessingLevel.HIGH:
        description += " Highly processed."
    if is_organic:
        description += ORGANIC_NOTE
    if benefits:
        description += f" Benefits: {'; '.join(benefits[:2])}."
    if concerns:
        description += f" Concerns: {'; '.join(concerns[:2])}."
    return description


def is_highly_processed(name: str) -> bool:
    return any(term in name for term in HIGHLY_PROCESSED_TERMS)


def fallback_analysis(ingredient_name: str, normalized: str, is_organic: bool) -> IngredientAnalysis:
    """Term-based analysis used when USDA has no usable data."""
    concerns = [c for term, c in FALLBACK_CONCERN_TERMS.items() if term in normalized]
    benefits = [b for term, b in FALLBACK_BENEFIT_TERMS.items() if term in normalized]

    if len(concerns) > 2:
        quality = Quality.POOR
    elif concerns:
        quality = Quality.NEUTRAL
    elif len(benefits) > 1:
        quality = Quality.GOOD
    else:
        quality = Quality.NEUTRAL

    if is_organic:
        quality = FALLBACK_ORGANIC_NUDGE.get(quality, quality)

    if len(concerns) > 1:
        processing_level = ProcessingLevel.HIGH
    elif is_organic:
        processing_level = ProcessingLevel.MINIMAL
    else:
        processing_level = ProcessingLevel.MODERATE

    return IngredientAnalysis(
        name=ingredient_name,
        quality=quality,
        description=build_description(quality, None, is_organic, concerns, benefits),
        processing_level=processing_level,
        criteria_results=evaluate_criteria(normalized, is_organic),
        organic=is_organic,
        concerns=concerns,
        benefits=benefits,
    )


class NutrientIngredientClassifier(IngredientClassifier):
    """Five-tier classifier backed by USDA FoodData Central."""

    def __init__(
        self,
        client: Optional[USDAClient] = None,
        cache: Optional[MemoryCache] = None,
        quota_guard: Optional[QuotaGuard] = None,
    ):
        self.client = client or USDAClient()
        self.cache = cache if cache is not None else MemoryCache.from_settings()
        self.quota_guard = quota_guard or QuotaGuard(
            "nutrient", cooldown_seconds=settings.quota_cooldown_seconds
        )

    async def classify(self, ingredient_name: str) -> IngredientAnalysis:
        normalized = Ingredient.normalize_name(ingredient_name)
        cached = self.cache.get(normalized)
        if cached is not None:
            return cached

        analysis = await self._analyze(ingredient_name, normalized)
        self.cache.set(normalized, analysis)
        return analysis

    async def _analyze(self, ingredient_name: str, normalized: str) -> IngredientAnalysis:
        is_organic, clean_name = detect_organic(normalized)

        if is_highly_processed(normalized):
            quality = Quality.POOR
            return IngredientAnalysis(
                name=ingredient_name,
                quality=quality,
                description=build_description(quality, None, is_organic, [], []),
                processing_level=ProcessingLevel.HIGH,
                criteria_results=evaluate_criteria(normalized, is_organic),
                organic=is_organic,
            )

        if not clean_name or self.quota_guard.exceeded:
            return fallback_analysis(ingredient_name, normalized, is_organic)

        try:
            foods = await self.client.search_foods(clean_name, page_size=3)
            if not foods:
                return fallback_analysis(ingredient_name, normalized, is_organic)

            best_match = foods[0]
            details = None
            if best_match.get("fdcId"):
                details = await self.client.get_food_details(best_match["fdcId"])
        except NutrientLookupError as e:
            if is_quota_error(e):
                logger.warning("USDA quota exceeded, using rule-based analysis: %s", e)
                self.quota_guard.trip(str(e))
            else:
                logger.warning("USDA lookup failed for %s: %s", normalized, e)
            return fallback_analysis(ingredient_name, normalized, is_organic)

        nutrients = extract_nutrient_profile(best_match, details)
        processing_level = determine_processing_level(normalized, best_match)
        quality, concerns, benefits = evaluate_nutrients(
            nutrients, processing_level, is_organic
        )

        fdc_id = best_match.get("fdcId")
        return IngredientAnalysis(
            name=ingredient_name,
            quality=quality,
            description=build_description(
                quality, processing_level, is_organic, concerns, benefits
            ),
            processing_level=processing_level,
            criteria_results=evaluate_criteria(normalized, is_organic),
            organic=is_organic,
            nutrients=nutrients,
            concerns=concerns,
            benefits=benefits,
            fdc_id=str(fdc_id) if fdc_id is not None else None,
        )

    def clear_cache(self) -> int:
        return self.cache.clear() + self.client.clear_cache()
