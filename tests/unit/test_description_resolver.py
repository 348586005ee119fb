"""
Unit tests for ingredient description resolution.

Uses MockClaudeService as the generator so call counts can be asserted.
"""

from unittest.mock import AsyncMock, patch

import pytest

from app.models import Quality
from app.services.ai_service import QuotaExceededError, ServiceUnavailableError
from app.services.cache import MemoryCache, QuotaGuard
from app.services.description_resolver import (
    CURATED_DESCRIPTIONS,
    GENERIC_DESCRIPTIONS,
    DescriptionResolver,
    fallback_description,
    find_curated_description,
)

GENERATE = "generate_ingredient_description"


# =============================================================================
# Curated and Generic Fallbacks
# =============================================================================


class TestFallbackDescription:
    """Tests for the curated table and generic sentences."""

    def test_exact_match(self):
        assert (
            find_curated_description("Cane Sugar", Quality.NEUTRAL)
            == CURATED_DESCRIPTIONS["cane sugar"]["moderate"]
        )

    def test_very_good_uses_good_bucket(self):
        assert (
            find_curated_description("Extra Virgin Olive Oil", Quality.VERY_GOOD)
            == CURATED_DESCRIPTIONS["extra virgin olive oil"]["good"]
        )

    def test_substring_match(self):
        assert (
            find_curated_description("Organic Whole Wheat Flour", Quality.NEUTRAL)
            == CURATED_DESCRIPTIONS["whole wheat flour"]["moderate"]
        )

    def test_bucket_must_exist(self):
        # "cane sugar" only has a moderate entry
        assert find_curated_description("cane sugar", Quality.POOR) is None
        assert fallback_description("cane sugar", Quality.POOR) == GENERIC_DESCRIPTIONS[Quality.POOR]

    def test_unknown_quality_is_generic(self):
        assert fallback_description("flour", Quality.UNKNOWN) == GENERIC_DESCRIPTIONS[Quality.UNKNOWN]

    def test_generic_for_unlisted_name(self):
        assert fallback_description("xanthan gum", Quality.NEUTRAL) == GENERIC_DESCRIPTIONS[Quality.NEUTRAL]

    def test_every_tier_has_generic_sentence(self):
        assert set(GENERIC_DESCRIPTIONS) == set(Quality)


# =============================================================================
# Resolution
# =============================================================================


class TestDescriptionResolver:
    """Tests for DescriptionResolver.resolve()."""

    @pytest.mark.asyncio
    async def test_generated_description(self, description_resolver, mock_claude_service):
        description = await description_resolver.resolve("Spinach", Quality.GOOD)

        assert description == "Generated description of spinach (good)."
        call = mock_claude_service.calls[GENERATE][0]["kwargs"]
        assert call == {"ingredient_name": "spinach", "quality": "good"}

    @pytest.mark.asyncio
    async def test_resolution_is_cached(self, description_resolver, mock_claude_service):
        first = await description_resolver.resolve("Spinach", Quality.GOOD)
        mock_claude_service.set_description_response("A different answer.")
        second = await description_resolver.resolve("  SPINACH ", Quality.GOOD)

        assert second == first
        assert mock_claude_service.call_count(GENERATE) == 1

    @pytest.mark.asyncio
    async def test_cache_key_includes_quality(self, description_resolver, mock_claude_service):
        await description_resolver.resolve("Sugar", Quality.POOR)
        await description_resolver.resolve("Sugar", Quality.NEUTRAL)
        assert mock_claude_service.call_count(GENERATE) == 2

    @pytest.mark.asyncio
    async def test_transient_error_retried(self, description_resolver, mock_claude_service):
        mock_claude_service.set_error(ServiceUnavailableError("AI service error"))

        description = await description_resolver.resolve("Spinach", Quality.GOOD)

        assert description == "Generated description of spinach (good)."
        assert mock_claude_service.call_count(GENERATE) == 2

    @pytest.mark.asyncio
    async def test_persistent_error_falls_back(self, description_resolver, mock_claude_service):
        mock_claude_service.set_error(ServiceUnavailableError("AI service error"), persist=True)

        description = await description_resolver.resolve("Cane Sugar", Quality.NEUTRAL)

        assert description == CURATED_DESCRIPTIONS["cane sugar"]["moderate"]
        assert mock_claude_service.call_count(GENERATE) == 3
        assert description_resolver.quota_guard.exceeded is False

    @pytest.mark.asyncio
    async def test_fallback_is_cached(self, description_resolver, mock_claude_service):
        mock_claude_service.set_error(ServiceUnavailableError("down"), persist=True)
        first = await description_resolver.resolve("Xanthan Gum", Quality.POOR)

        mock_claude_service.reset()
        second = await description_resolver.resolve("Xanthan Gum", Quality.POOR)

        assert second == first == GENERIC_DESCRIPTIONS[Quality.POOR]
        assert mock_claude_service.call_count(GENERATE) == 0

    @pytest.mark.asyncio
    async def test_quota_error_trips_guard(self, description_resolver, mock_claude_service):
        mock_claude_service.set_error(QuotaExceededError("AI quota exceeded"), persist=True)

        first = await description_resolver.resolve("Sugar", Quality.POOR)
        assert first == GENERIC_DESCRIPTIONS[Quality.POOR]
        # No retries after a quota error
        assert mock_claude_service.call_count(GENERATE) == 1
        assert description_resolver.quota_guard.exceeded is True

        second = await description_resolver.resolve("Honey", Quality.NEUTRAL)
        assert second == CURATED_DESCRIPTIONS["honey"]["moderate"]
        assert mock_claude_service.call_count(GENERATE) == 1

    @pytest.mark.asyncio
    async def test_empty_generation_falls_back(self, description_resolver, mock_claude_service):
        mock_claude_service.set_description_response("   ")

        description = await description_resolver.resolve("Water", Quality.NEUTRAL)

        assert description == GENERIC_DESCRIPTIONS[Quality.NEUTRAL]
        assert mock_claude_service.call_count(GENERATE) == 3

    @pytest.mark.asyncio
    async def test_disabled_generation(self, mock_claude_service):
        resolver = DescriptionResolver(
            generator=mock_claude_service.generate_ingredient_description,
            cache=MemoryCache(),
            quota_guard=QuotaGuard("description"),
            enabled=False,
        )

        description = await resolver.resolve("Honey", Quality.NEUTRAL)

        assert description == CURATED_DESCRIPTIONS["honey"]["moderate"]
        assert mock_claude_service.call_count(GENERATE) == 0

    @pytest.mark.asyncio
    async def test_no_generator(self):
        resolver = DescriptionResolver(cache=MemoryCache(), quota_guard=QuotaGuard("description"))
        assert await resolver.resolve("Water", Quality.NEUTRAL) == GENERIC_DESCRIPTIONS[Quality.NEUTRAL]

    @pytest.mark.asyncio
    async def test_retry_delay_grows_with_attempt(self, mock_claude_service):
        resolver = DescriptionResolver(
            generator=mock_claude_service.generate_ingredient_description,
            cache=MemoryCache(),
            quota_guard=QuotaGuard("description"),
            max_retries=2,
            retry_delay=1.0,
            enabled=True,
        )
        mock_claude_service.set_error(ServiceUnavailableError("down"), persist=True)

        with patch(
            "app.services.description_resolver.asyncio.sleep", new_callable=AsyncMock
        ) as mock_sleep:
            await resolver.resolve("Water", Quality.NEUTRAL)

        assert [c.args[0] for c in mock_sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_clear_cache(self, description_resolver):
        await description_resolver.resolve("Water", Quality.NEUTRAL)
        await description_resolver.resolve("Salt", Quality.NEUTRAL)
        assert description_resolver.clear_cache() == 2
