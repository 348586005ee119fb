"""API endpoints for free-text ingredient analysis."""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from app.services.product_service import product_service

router = APIRouter(prefix="/ingredients", tags=["ingredients"])


class AnalyzeIngredientsRequest(BaseModel):
    text: str = Field(..., max_length=10000)


@router.post("/analyze")
async def analyze_ingredients(request: AnalyzeIngredientsRequest):
    """
    Parse, classify and describe an ingredient list, then score it.

    Returns:
        {"ingredients": [...], "healthScore": int}
    """
    ingredients, health_score = await product_service.analyze_text(request.text)
    return {
        "ingredients": [i.model_dump(by_alias=True, mode="json") for i in ingredients],
        "healthScore": health_score,
    }
