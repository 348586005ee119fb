"""
Model-backed ingredient classification.

Asks ClaudeService for a JSON classification and falls back to the keyword
classifier on any failure or while the generation quota guard is tripped.
"""

import logging
from typing import Optional

from app.config import settings
from app.models.ingredient import (
    CriteriaResults,
    Ingredient,
    IngredientAnalysis,
    ProcessingLevel,
    Quality,
)
from app.services.ai_service import ClaudeService
from app.services.cache import MemoryCache, QuotaGuard, is_quota_error
from app.services.ingredient_analyzer import (
    IngredientClassifier,
    KeywordIngredientClassifier,
    detect_organic,
)


logger = logging.getLogger(__name__)


class GenerativeIngredientClassifier(IngredientClassifier):
    """Classifies ingredients with the text-generation model."""

    def __init__(
        self,
        ai_service: Optional[ClaudeService] = None,
        fallback: Optional[KeywordIngredientClassifier] = None,
        cache: Optional[MemoryCache] = None,
        quota_guard: Optional[QuotaGuard] = None,
    ):
        self.ai_service = ai_service or ClaudeService()
        self.fallback = fallback or KeywordIngredientClassifier()
        self.cache = cache if cache is not None else MemoryCache.from_settings()
        self.quota_guard = quota_guard or QuotaGuard(
            "generation", cooldown_seconds=settings.quota_cooldown_seconds
        )

    async def classify(self, ingredient_name: str) -> IngredientAnalysis:
        normalized = Ingredient.normalize_name(ingredient_name)
        cached = self.cache.get(normalized)
        if cached is not None:
            return cached

        if not normalized or self.quota_guard.exceeded:
            return self.fallback.analyze(ingredient_name)

        try:
            result = await self.ai_service.classify_ingredient(normalized)
        except Exception as e:
            if is_quota_error(e):
                logger.warning("Classification quota exceeded, using keyword rules: %s", e)
                self.quota_guard.trip(str(e))
            else:
                logger.warning("Model classification failed for %s: %s", normalized, e)
            return self.fallback.analyze(ingredient_name)

        is_organic, _ = detect_organic(normalized)
        analysis = IngredientAnalysis(
            name=ingredient_name,
            quality=Quality(result["quality"]),
            description=result["description"].strip(),
            processing_level=ProcessingLevel(result["processing_level"]),
            criteria_results=CriteriaResults(**result["criteria_results"]),
            organic=is_organic,
        )
        self.cache.set(normalized, analysis)
        return analysis

    def clear_cache(self) -> int:
        return self.cache.clear() + self.fallback.clear_cache()
