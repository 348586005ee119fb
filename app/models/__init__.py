"""
Domain models for Smart Aisle.

Pydantic models for products and ingredient analyses. All snapshots are
frozen; updates go through model_copy().
"""

from app.models.ingredient import (
    CRITERIA_NAMES,
    GRADED_QUALITIES,
    CriteriaResults,
    CriterionSeverity,
    Ingredient,
    IngredientAnalysis,
    NutrientProfile,
    ProcessingLevel,
    Quality,
    QualityCriterion,
)
from app.models.product import (
    PLACEHOLDER_IMAGE,
    Allergen,
    AllergenSeverity,
    Product,
    ProductLoading,
)

__all__ = [
    "CRITERIA_NAMES",
    "GRADED_QUALITIES",
    "CriteriaResults",
    "CriterionSeverity",
    "Ingredient",
    "IngredientAnalysis",
    "NutrientProfile",
    "ProcessingLevel",
    "Quality",
    "QualityCriterion",
    "PLACEHOLDER_IMAGE",
    "Allergen",
    "AllergenSeverity",
    "Product",
    "ProductLoading",
]
