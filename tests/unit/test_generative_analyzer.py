"""
Unit tests for the model-backed ingredient classifier.
"""

import pytest

from app.models import ProcessingLevel, Quality
from app.services.ai_service import QuotaExceededError, ServiceUnavailableError
from app.services.cache import MemoryCache, QuotaGuard
from app.services.generative_analyzer import GenerativeIngredientClassifier
from app.services.ingredient_analyzer import KeywordIngredientClassifier

CLASSIFY = "classify_ingredient"


@pytest.fixture
def classifier(mock_claude_service):
    return GenerativeIngredientClassifier(
        ai_service=mock_claude_service,
        fallback=KeywordIngredientClassifier(cache=MemoryCache()),
        cache=MemoryCache(),
        quota_guard=QuotaGuard("classification"),
    )


class TestGenerativeIngredientClassifier:
    """Tests for GenerativeIngredientClassifier.classify()."""

    @pytest.mark.asyncio
    async def test_uses_model_result(self, classifier, mock_claude_service):
        analysis = await classifier.classify("Organic Kale")

        assert analysis.name == "Organic Kale"
        assert analysis.quality == Quality.GOOD
        assert analysis.processing_level == ProcessingLevel.MINIMAL
        assert analysis.description == "Model description of organic kale."
        assert analysis.organic is True
        assert "pesticides" in analysis.failed_criteria
        assert mock_claude_service.calls[CLASSIFY][0]["kwargs"] == {
            "ingredient_name": "organic kale"
        }

    @pytest.mark.asyncio
    async def test_custom_response(self, classifier, mock_claude_service):
        mock_claude_service.set_classification_response(
            {
                "quality": "poor",
                "description": "Refined sweetener. ",
                "processing_level": "high",
                "criteria_results": {"refined_sugars": False},
            }
        )

        analysis = await classifier.classify("Sugar")

        assert analysis.quality == Quality.POOR
        assert analysis.description == "Refined sweetener."
        assert analysis.failed_criteria == ["refined_sugars"]

    @pytest.mark.asyncio
    async def test_results_cached(self, classifier, mock_claude_service):
        first = await classifier.classify("Kale")
        second = await classifier.classify(" KALE ")

        assert second is first
        assert mock_claude_service.call_count(CLASSIFY) == 1

    @pytest.mark.asyncio
    async def test_error_falls_back_to_keywords(self, classifier, mock_claude_service):
        mock_claude_service.set_error(ServiceUnavailableError("AI service error"))

        analysis = await classifier.classify("Cane Sugar")

        assert analysis == classifier.fallback.analyze("Cane Sugar")
        assert classifier.quota_guard.exceeded is False

    @pytest.mark.asyncio
    async def test_fallback_not_cached(self, classifier, mock_claude_service):
        mock_claude_service.set_error(ServiceUnavailableError("AI service error"))
        await classifier.classify("Kale")

        analysis = await classifier.classify("Kale")

        assert analysis.description == "Model description of kale."
        assert mock_claude_service.call_count(CLASSIFY) == 2

    @pytest.mark.asyncio
    async def test_quota_error_trips_guard(self, classifier, mock_claude_service):
        mock_claude_service.set_error(QuotaExceededError("AI quota exceeded"))

        await classifier.classify("Kale")
        assert classifier.quota_guard.exceeded is True

        analysis = await classifier.classify("Spinach")
        assert analysis.quality == Quality.GOOD
        assert mock_claude_service.call_count(CLASSIFY) == 1

    @pytest.mark.asyncio
    async def test_clear_cache_includes_fallback(self, classifier):
        await classifier.classify("Kale")
        classifier.fallback.analyze("Water")
        assert classifier.clear_cache() == 2
