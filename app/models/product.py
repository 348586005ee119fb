import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.ingredient import Ingredient

PLACEHOLDER_IMAGE = "/placeholder.svg?height=300&width=300"


class AllergenSeverity(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Allergen(BaseModel):
    """Allergen derived from upstream allergen tags."""
    model_config = ConfigDict(frozen=True)

    name: str
    severity: AllergenSeverity = AllergenSeverity.MEDIUM


class ProductLoading(BaseModel):
    model_config = ConfigDict(frozen=True)

    ingredients: bool = False


class Product(BaseModel):
    """
    Immutable product snapshot.

    Assembly never mutates a snapshot; each stage produces a new one with
    model_copy(update=...) and replaces the cache entry.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    brand: str
    image: str = PLACEHOLDER_IMAGE
    health_score: int = Field(default=0, ge=0, le=100, alias="healthScore")
    ingredients: list[Ingredient] = []
    allergens: list[Allergen] = []
    price: float = 0.0
    store: str = "Unknown"
    product_type: str = Field(default="unknown", alias="productType")
    loading: Optional[ProductLoading] = None

    @property
    def is_loading(self) -> bool:
        return bool(self.loading and self.loading.ingredients)
