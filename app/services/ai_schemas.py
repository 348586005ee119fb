"""
Pydantic models for validating structured JSON responses from Claude AI.

Each schema corresponds to one AI method's expected response format.
Used by _call_with_schema_retry() in ai_service.py for validation + retry.
"""

from typing import Literal

from pydantic import BaseModel


# --- Ingredient Classification (classify_ingredient) ---


class CriteriaResultsSchema(BaseModel):
    organic: bool = False
    seed_oils: bool = True
    refined_sugars: bool = True
    preservatives: bool = True
    gmo: bool = True
    artificial_flavors: bool = True
    pesticides: bool = False
    food_colorings: bool = True
    ultra_processed: bool = True
    toxins: bool = True
    fragrances: bool = True


class IngredientClassificationSchema(BaseModel):
    quality: Literal["good", "neutral", "poor", "unknown"]
    description: str
    processing_level: Literal["minimal", "moderate", "high"] = "moderate"
    criteria_results: CriteriaResultsSchema = CriteriaResultsSchema()
