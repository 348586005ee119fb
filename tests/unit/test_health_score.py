"""
Unit tests for health score aggregation.
"""

import pytest

from app.models import Ingredient, Quality
from app.services.health_score import (
    UpstreamSignals,
    calculate_health_score,
    default_quality_weights,
    ingredient_score,
    upstream_score,
)


def _ingredients(*qualities: Quality) -> list[Ingredient]:
    return [
        Ingredient(name=f"ingredient {i}", quality=q, description="test")
        for i, q in enumerate(qualities)
    ]


class TestIngredientScore:
    """Tests for the ingredient-only score."""

    def test_empty_list_scores_zero(self):
        assert calculate_health_score([]) == 0

    def test_all_good(self):
        assert ingredient_score(_ingredients(Quality.GOOD, Quality.VERY_GOOD)) == 100

    def test_neutral_band(self):
        # average 0.5 falls in the < 0.6 band
        assert ingredient_score(_ingredients(Quality.NEUTRAL, Quality.NEUTRAL)) == 85

    def test_poor_penalty(self):
        # average 0.8 is outside every band; one poor ingredient costs 10
        ingredients = _ingredients(*([Quality.GOOD] * 4 + [Quality.POOR]))
        assert ingredient_score(ingredients) == 90

    def test_all_poor(self):
        assert ingredient_score(_ingredients(Quality.POOR, Quality.VERY_POOR, Quality.POOR)) == 20

    def test_clamped_at_zero(self):
        assert ingredient_score(_ingredients(*([Quality.VERY_POOR] * 10))) == 0

    def test_unknown_uses_configured_weight(self):
        assert default_quality_weights()[Quality.UNKNOWN] == pytest.approx(0.3)
        assert ingredient_score(_ingredients(Quality.UNKNOWN)) == 70

    def test_custom_weights(self):
        weights = default_quality_weights()
        weights[Quality.UNKNOWN] = 0.0
        assert ingredient_score(_ingredients(Quality.UNKNOWN), weights) == 50

    def test_more_poor_never_raises_score(self):
        previous = 100
        for poor_count in range(6):
            qualities = [Quality.POOR] * poor_count + [Quality.GOOD] * (5 - poor_count)
            score = calculate_health_score(_ingredients(*qualities))
            assert 0 <= score <= 100
            assert score <= previous
            previous = score


class TestUpstreamSignals:
    """Tests for UpstreamSignals.from_record()."""

    def test_reads_grade_and_group(self):
        signals = UpstreamSignals.from_record({"nutrition_grades": "B", "nova_group": "2"})
        assert signals.nutriscore_grade == "b"
        assert signals.nova_group == 2
        assert signals.available

    def test_malformed_values_ignored(self):
        signals = UpstreamSignals.from_record({"nutriscore_grade": "z", "nova_group": "x"})
        assert signals.nutriscore_grade is None
        assert signals.nova_group is None
        assert not signals.available

    def test_out_of_range_group_ignored(self):
        assert UpstreamSignals.from_record({"nova_group": 7}).nova_group is None


class TestCombinedScore:
    """Tests for scores that use upstream signals."""

    def test_upstream_score(self):
        assert upstream_score(UpstreamSignals(nutriscore_grade="a", nova_group=1)) == 90
        assert upstream_score(UpstreamSignals(nutriscore_grade="e", nova_group=4)) == 20
        assert upstream_score(UpstreamSignals()) == 50

    def test_signals_without_ingredients(self):
        signals = UpstreamSignals(nutriscore_grade="a", nova_group=1)
        assert calculate_health_score([], signals) == 90

    def test_signals_averaged_with_ingredients(self):
        signals = UpstreamSignals(nutriscore_grade="a", nova_group=1)
        assert calculate_health_score(_ingredients(Quality.GOOD), signals) == 95

    def test_average_rounds_half_up(self):
        # (90 + 85) / 2 = 87.5
        signals = UpstreamSignals(nutriscore_grade="a", nova_group=1)
        ingredients = _ingredients(Quality.NEUTRAL, Quality.NEUTRAL)
        assert calculate_health_score(ingredients, signals) == 88

    def test_unavailable_signals_ignored(self):
        ingredients = _ingredients(Quality.NEUTRAL)
        assert calculate_health_score(ingredients, UpstreamSignals()) == ingredient_score(ingredients)
