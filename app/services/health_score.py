"""
Health score aggregation (0-100).

Ingredient-based score:
    start at 100, deduct by band on the average quality weight, then
    deduct 10 per poor or very poor ingredient.

Upstream-signal score (Nutri-Score grade and NOVA group present):
    start at 50, adjust per grade and group, then average with the
    ingredient-based score when ingredients are known.
"""

import math
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.config import settings
from app.models.ingredient import Ingredient, Quality


# Weight per quality tier; UNKNOWN comes from settings
BASE_QUALITY_WEIGHTS = {
    Quality.VERY_GOOD: 1.0,
    Quality.GOOD: 1.0,
    Quality.NEUTRAL: 0.5,
    Quality.POOR: 0.0,
    Quality.VERY_POOR: 0.0,
}

# (upper bound on average weight, deduction)
AVERAGE_WEIGHT_BANDS = [
    (0.2, 50),
    (0.4, 30),
    (0.6, 15),
    (0.8, 5),
]

POOR_INGREDIENT_PENALTY = 10
POOR_QUALITIES = {Quality.POOR, Quality.VERY_POOR}

NUTRISCORE_ADJUSTMENTS = {"a": 30, "b": 20, "c": 10, "d": -10, "e": -20}
NOVA_ADJUSTMENTS = {1: 10, 2: 5, 3: -5, 4: -10}
UPSTREAM_BASE_SCORE = 50


class UpstreamSignals(BaseModel):
    """Grade signals reported by the product database."""
    model_config = ConfigDict(frozen=True)

    nutriscore_grade: Optional[str] = None
    nova_group: Optional[int] = Field(default=None, ge=1, le=4)

    @property
    def available(self) -> bool:
        return self.nutriscore_grade is not None or self.nova_group is not None

    @classmethod
    def from_record(cls, record: dict) -> "UpstreamSignals":
        """Read signals from a raw product record, ignoring malformed values."""
        grade = record.get("nutriscore_grade") or record.get("nutrition_grades")
        if isinstance(grade, str) and grade.strip().lower() in NUTRISCORE_ADJUSTMENTS:
            grade = grade.strip().lower()
        else:
            grade = None

        nova = record.get("nova_group")
        try:
            nova = int(nova) if nova is not None else None
        except (TypeError, ValueError):
            nova = None
        if nova not in NOVA_ADJUSTMENTS:
            nova = None

        return cls(nutriscore_grade=grade, nova_group=nova)


def default_quality_weights() -> dict[Quality, float]:
    weights = dict(BASE_QUALITY_WEIGHTS)
    weights[Quality.UNKNOWN] = settings.unknown_quality_weight
    return weights


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: float) -> int:
    return max(0, min(100, _round_half_up(value)))


def ingredient_score(
    ingredients: list[Ingredient],
    weights: Optional[dict[Quality, float]] = None,
) -> int:
    """Score from ingredient qualities alone. No ingredients scores 0."""
    if not ingredients:
        return 0

    weights = weights or default_quality_weights()
    total = sum(weights.get(ingredient.quality, 0.0) for ingredient in ingredients)
    average = total / len(ingredients)

    score = 100
    for upper_bound, deduction in AVERAGE_WEIGHT_BANDS:
        if average < upper_bound:
            score -= deduction
            break

    poor_count = sum(1 for i in ingredients if i.quality in POOR_QUALITIES)
    score -= POOR_INGREDIENT_PENALTY * poor_count

    return _clamp(score)


def upstream_score(signals: UpstreamSignals) -> int:
    score = UPSTREAM_BASE_SCORE
    if signals.nutriscore_grade:
        score += NUTRISCORE_ADJUSTMENTS[signals.nutriscore_grade]
    if signals.nova_group:
        score += NOVA_ADJUSTMENTS[signals.nova_group]
    return _clamp(score)


def calculate_health_score(
    ingredients: list[Ingredient],
    signals: Optional[UpstreamSignals] = None,
    weights: Optional[dict[Quality, float]] = None,
) -> int:
    """
    Calculate a product's health score.

    Args:
        ingredients: Classified ingredients (may be empty)
        signals: Upstream grade signals, if the product database has them
        weights: Quality weight table (defaults to default_quality_weights())

    Returns:
        Integer in [0, 100]
    """
    if signals is None or not signals.available:
        return ingredient_score(ingredients, weights)

    from_signals = upstream_score(signals)
    if not ingredients:
        return from_signals

    from_ingredients = ingredient_score(ingredients, weights)
    return _clamp((from_signals + from_ingredients) / 2)
