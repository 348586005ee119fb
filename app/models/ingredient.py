import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


class Quality(str, enum.Enum):
    """Quality tier assigned to a single ingredient."""
    VERY_GOOD = "very_good"
    GOOD = "good"
    NEUTRAL = "neutral"
    POOR = "poor"
    VERY_POOR = "very_poor"
    UNKNOWN = "unknown"


# Graded tiers from worst to best (UNKNOWN is not graded)
GRADED_QUALITIES = [
    Quality.VERY_POOR,
    Quality.POOR,
    Quality.NEUTRAL,
    Quality.GOOD,
    Quality.VERY_GOOD,
]


class ProcessingLevel(str, enum.Enum):
    """How industrially altered an ingredient is."""
    MINIMAL = "minimal"
    MODERATE = "moderate"
    HIGH = "high"


class CriterionSeverity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class QualityCriterion(BaseModel):
    """Static reference data for one of the eleven health criteria."""
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    severity: CriterionSeverity = CriterionSeverity.HIGH
    weight: int = 10


class CriteriaResults(BaseModel):
    """Pass/fail result per criterion. True means the criterion passed."""
    model_config = ConfigDict(frozen=True)

    organic: bool = True
    seed_oils: bool = True
    refined_sugars: bool = True
    preservatives: bool = True
    gmo: bool = True
    artificial_flavors: bool = True
    pesticides: bool = True
    food_colorings: bool = True
    ultra_processed: bool = True
    toxins: bool = True
    fragrances: bool = True

    def failed(self) -> list[str]:
        return [name for name, passed in self.model_dump().items() if not passed]

    def passed(self) -> list[str]:
        return [name for name, passed in self.model_dump().items() if passed]


CRITERIA_NAMES = list(CriteriaResults.model_fields)


class NutrientProfile(BaseModel):
    """Nutrient values per 100g as reported by the nutrient database."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    calories: Optional[float] = None
    protein: Optional[float] = None
    fat: Optional[float] = None
    saturated_fat: Optional[float] = Field(default=None, alias="saturatedFat")
    trans_fat: Optional[float] = Field(default=None, alias="transFat")
    carbs: Optional[float] = None
    sugar: Optional[float] = None
    fiber: Optional[float] = None
    sodium: Optional[float] = None
    vitamins: dict[str, float] = {}
    minerals: dict[str, float] = {}
    additives: list[str] = []


class IngredientAnalysis(BaseModel):
    """Full classification result for one ingredient name."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    quality: Quality
    description: str
    processing_level: ProcessingLevel = ProcessingLevel.MODERATE
    criteria_results: CriteriaResults = Field(
        default_factory=CriteriaResults, alias="criteriaResults"
    )

    # Detail populated by the nutrient-database strategy
    organic: bool = False
    nutrients: Optional[NutrientProfile] = None
    concerns: list[str] = []
    benefits: list[str] = []
    fdc_id: Optional[str] = Field(default=None, alias="fdcId")

    @computed_field(alias="failedCriteria")
    @property
    def failed_criteria(self) -> list[str]:
        return self.criteria_results.failed()

    @computed_field(alias="passedCriteria")
    @property
    def passed_criteria(self) -> list[str]:
        return self.criteria_results.passed()


class Ingredient(BaseModel):
    """An ingredient as attached to a product."""
    model_config = ConfigDict(frozen=True)

    name: str
    quality: Quality
    description: str
    analysis: Optional[IngredientAnalysis] = None

    @staticmethod
    def normalize_name(name: str) -> str:
        """Normalize ingredient name for cache keys and table lookups."""
        return " ".join(name.lower().split())
