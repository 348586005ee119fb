"""
Rule-based ingredient quality analysis.

Classifies an ingredient name into a quality tier by testing ordered keyword
tables (very good, good, neutral, poor, very poor), applies an organic boost,
and evaluates the eleven health criteria with hazard patterns that are
independent of the tier. This is the primary, synchronous strategy; see
nutrient_analyzer.py and generative_analyzer.py for the alternatives.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

from app.models.ingredient import (
    GRADED_QUALITIES,
    CriteriaResults,
    Ingredient,
    IngredientAnalysis,
    ProcessingLevel,
    Quality,
    QualityCriterion,
)
from app.services.cache import MemoryCache


logger = logging.getLogger(__name__)


HEALTH_CRITERIA = [
    QualityCriterion(
        name="organic",
        description="Organic certification indicates absence of synthetic pesticides and fertilizers",
    ),
    QualityCriterion(
        name="seed_oils",
        description="Contains seed oils which may promote inflammation",
    ),
    QualityCriterion(
        name="refined_sugars",
        description="Contains refined sugars which can impact blood sugar levels",
    ),
    QualityCriterion(
        name="preservatives",
        description="Contains preservatives that may have health implications",
    ),
    QualityCriterion(name="gmo", description="May be genetically modified"),
    QualityCriterion(
        name="artificial_flavors",
        description="Contains artificial or 'natural' flavors",
    ),
    QualityCriterion(name="pesticides", description="May contain pesticide residues"),
    QualityCriterion(
        name="food_colorings", description="Contains artificial food colorings"
    ),
    QualityCriterion(name="ultra_processed", description="Is highly processed"),
    QualityCriterion(
        name="toxins", description="May contain potentially harmful compounds"
    ),
    QualityCriterion(name="fragrances", description="Contains added fragrances"),
]


# =============================================================================
# KEYWORD TABLES (tested in this order, first hit wins)
# =============================================================================

VERY_GOOD_KEYWORDS = [
    # Quality animal products
    "grass-fed",
    "grass fed",
    "pasture-raised",
    "pasture raised",
    "wild-caught",
    "wild caught",
    "free-range",
    "free range",
    # Quality oils
    "extra virgin olive oil",
    "olive oil",
    "avocado oil",
    "coconut oil",
    "single-origin oil",
    # Minimally processed sweeteners
    "raw honey",
    "maple syrup",
    "coconut sugar",
    "date sugar",
    "monk fruit",
    "sprouted",
]

FRUIT_KEYWORDS = [
    "apple",
    "apricot",
    "avocado",
    "banana",
    "berry",
    "berries",
    "blackberry",
    "blackberries",
    "blueberry",
    "blueberries",
    "cantaloupe",
    "cherry",
    "cherries",
    "coconut",
    "cranberry",
    "cranberries",
    "date",
    "fig",
    "grape",
    "grapefruit",
    "guava",
    "kiwi",
    "lemon",
    "lime",
    "mango",
    "melon",
    "nectarine",
    "orange",
    "papaya",
    "peach",
    "peaches",
    "pear",
    "pineapple",
    "plum",
    "pomegranate",
    "raspberry",
    "raspberries",
    "strawberry",
    "strawberries",
    "tangerine",
    "watermelon",
]

GOOD_KEYWORDS = [
    # Whole grains, legumes, nuts and seeds
    "quinoa",
    "oat",
    "oats",
    "brown rice",
    "wild rice",
    "whole grain",
    "whole wheat",
    "lentil",
    "bean",
    "chickpea",
    "almond",
    "cashew",
    "walnut",
    "pecan",
    "pumpkin seed",
    "chia seed",
    "flax seed",
    "flaxseed",
    "sunflower seed",
    "sesame seed",
    # Vegetables
    "spinach",
    "kale",
    "broccoli",
    "carrot",
    "tomato",
    "tomatoes",
    "potato",
    "potatoes",
    "sweet potato",
    "pea",
    "celery",
    "cucumber",
    "zucchini",
    "squash",
    "pumpkin",
    # Animal products and proteins
    "egg",
    "milk",
    "yogurt",
    "cheese",
    "beef",
    "chicken",
    "fish",
    "salmon",
    "tuna",
    "turkey",
    "lamb",
    "pork",
    "tofu",
    "tempeh",
] + FRUIT_KEYWORDS

NEUTRAL_KEYWORDS = [
    # Spices and herbs
    "salt",
    "pepper",
    "cinnamon",
    "turmeric",
    "ginger",
    "garlic",
    "onion",
    "basil",
    "oregano",
    "thyme",
    "rosemary",
    "parsley",
    "cilantro",
    "cumin",
    "paprika",
    "cayenne",
    "nutmeg",
    "cloves",
    "cardamom",
    "coriander",
    "dill",
    "mint",
    "sage",
    "bay leaf",
    "vanilla",
    "cacao",
    "cocoa",
    "spices",
    "herbs",
    # Basic cooking ingredients
    "water",
    "honey",
    "butter",
    "cream",
    "baking soda",
    "baking powder",
    "cream of tartar",
    "yeast",
    "vinegar",
]

POOR_KEYWORDS = [
    # Refined sugars
    "sugar",
    "corn syrup",
    "glucose",
    "fructose",
    "dextrose",
    "maltose",
    "sucrose",
    # Refined flours
    "white flour",
    "enriched flour",
    "bleached flour",
    "all-purpose flour",
    "flour",
    "unbleached flour",
    # Seed oils
    "vegetable oil",
    "canola oil",
    "soybean oil",
    "corn oil",
    "sunflower oil",
    "safflower oil",
    "cottonseed oil",
    "grapeseed oil",
    "rice bran oil",
    "palm kernel oil",
    # Additives
    "natural flavor",
    "natural flavors",
    "natural flavoring",
]

VERY_POOR_KEYWORDS = [
    # Artificial sweeteners
    "high fructose corn syrup",
    "corn syrup solids",
    "aspartame",
    "sucralose",
    "saccharin",
    "acesulfame",
    "neotame",
    "advantame",
    # Artificial flavors and colors
    "artificial flavor",
    "artificial flavoring",
    "artificial color",
    "red 40",
    "yellow 5",
    "yellow 6",
    "blue 1",
    "blue 2",
    "green 3",
    "caramel color",
    "color added",
    # Preservatives
    "bha",
    "bht",
    "tbhq",
    "sodium nitrite",
    "sodium nitrate",
    "sodium benzoate",
    "potassium sorbate",
    "calcium propionate",
    "sodium erythorbate",
    "propyl gallate",
    "propylene glycol",
    "calcium disodium edta",
    # Ultra-processed
    "hydrogenated",
    "partially hydrogenated",
    "interesterified",
    "modified food starch",
    "modified corn starch",
    "textured vegetable protein",
    "soy protein isolate",
    "whey protein isolate",
    "hydrolyzed",
    "maltodextrin",
    # GMO indicators
    "genetically modified",
    "genetically engineered",
    # Toxins
    "brominated vegetable oil",
    "potassium bromate",
    "titanium dioxide",
    "carrageenan",
    "monosodium glutamate",
    "msg",
    # Fragrances
    "fragrance",
    "parfum",
]


def _keyword_pattern(keywords: list[str]) -> re.Pattern:
    """Word-bounded alternation, longest keyword first, optional plural."""
    ordered = sorted(keywords, key=len, reverse=True)
    alternation = "|".join(re.escape(keyword) for keyword in ordered)
    return re.compile(rf"\b(?:{alternation})(?:e?s)?\b")


KEYWORD_TABLES = [
    (Quality.VERY_GOOD, _keyword_pattern(VERY_GOOD_KEYWORDS)),
    (Quality.GOOD, _keyword_pattern(GOOD_KEYWORDS)),
    (Quality.NEUTRAL, _keyword_pattern(NEUTRAL_KEYWORDS)),
    (Quality.POOR, _keyword_pattern(POOR_KEYWORDS)),
    (Quality.VERY_POOR, _keyword_pattern(VERY_POOR_KEYWORDS)),
]

# This strategy reports on a four-tier scale
_FOUR_TIER = {
    Quality.VERY_GOOD: Quality.GOOD,
    Quality.VERY_POOR: Quality.POOR,
}


# =============================================================================
# HAZARD PATTERNS (criterion -> regex; a match fails the criterion)
# =============================================================================

MINIMAL_SWEETENERS = re.compile(
    r"\b(maple syrup|coconut sugar|date sugar|raw honey|monk fruit)\b"
)

HAZARD_PATTERNS = {
    "seed_oils": re.compile(
        r"\b(vegetable|canola|rapeseed|soybean|soya?|corn|sunflower|safflower|"
        r"cottonseed|grapeseed|rice bran|palm kernel)\s+oils?\b"
    ),
    "refined_sugars": re.compile(
        r"\bsugars?\b|\bsyrups?\b|\b(glucose|fructose|dextrose|maltose|sucrose)\b|"
        r"\b(aspartame|sucralose|saccharin|acesulfame|neotame|advantame)\b"
    ),
    "preservatives": re.compile(
        r"\b(bha|bht|tbhq|edta)\b|nitrite|nitrate|benzoate|sorbate|propionate|"
        r"erythorbate|gallate|paraben|sulfite|sulphite"
    ),
    "gmo": re.compile(r"\bgmo\b|genetically\s+(modified|engineered)|bioengineered"),
    "artificial_flavors": re.compile(
        r"\b(artificial|natural)\s+flavou?r|\bflavou?rings?\b"
    ),
    "food_colorings": re.compile(
        r"\b(red|yellow|blue|green)\s*(no\.?\s*)?\d+\b|\bartificial\s+colou?rs?\b|"
        r"\bcolou?r\s+added\b|\bcaramel\s+colou?r\b|\bdyes?\b"
    ),
    "ultra_processed": re.compile(
        r"hydrogenated|interesterified|\bmodified\b|\bisolates?\b|"
        r"hydroly[sz]ed|maltodextrin|\bdextrin\b|textured vegetable protein"
    ),
    "toxins": re.compile(
        r"alumin(um|ium)|titanium dioxide|silicon dioxide|potassium bromate|"
        r"brominated|carrageenan|monosodium glutamate|\bmsg\b"
    ),
    "fragrances": re.compile(r"fragrance|\bparfum\b|\bperfume\b|\baroma\b|\bscent\b"),
}

_ORGANIC = re.compile(r"\b(certified\s+)?organic\b")
_MINIMAL_CUES = re.compile(r"^(raw|fresh|whole|unprocessed|wild|sprouted)\b")


QUALITY_DESCRIPTIONS = {
    Quality.VERY_GOOD: "Highly nutritious ingredient with significant health benefits.",
    Quality.GOOD: "Nutritious ingredient with beneficial properties.",
    Quality.NEUTRAL: "Generally harmless ingredient without significant health benefits or concerns.",
    Quality.POOR: "Ingredient with some nutritional or processing concerns.",
    Quality.VERY_POOR: "Highly processed ingredient with significant health concerns.",
    Quality.UNKNOWN: "Ingredient with insufficient information to confidently categorize.",
}

ORGANIC_NOTE = (
    " Organic certification indicates absence of synthetic pesticides and fertilizers."
)


# =============================================================================
# SHARED HELPERS
# =============================================================================


def detect_organic(name: str) -> tuple[bool, str]:
    """
    Detect an organic qualifier.

    Returns:
        (is_organic, name with the qualifier removed)
    """
    normalized = Ingredient.normalize_name(name)
    if not _ORGANIC.search(normalized):
        return False, normalized
    stripped = " ".join(_ORGANIC.sub(" ", normalized).split())
    return True, stripped


def raise_quality(quality: Quality, ceiling: Quality = Quality.VERY_GOOD) -> Quality:
    """Move a graded quality up one tier, never past ceiling."""
    if quality not in GRADED_QUALITIES:
        return quality
    index = GRADED_QUALITIES.index(quality)
    ceiling_index = GRADED_QUALITIES.index(ceiling)
    if index >= ceiling_index:
        return quality
    return GRADED_QUALITIES[index + 1]


def evaluate_criteria(name: str, is_organic: bool) -> CriteriaResults:
    """
    Evaluate the eleven health criteria for an ingredient name.

    Hazards are detected by pattern regardless of the quality tier.
    Non-organic ingredients fail the organic, pesticides and gmo criteria.
    """
    normalized = Ingredient.normalize_name(name)
    results = {
        criterion: not pattern.search(normalized)
        for criterion, pattern in HAZARD_PATTERNS.items()
    }

    if MINIMAL_SWEETENERS.search(normalized):
        results["refined_sugars"] = True

    results["organic"] = is_organic
    if not is_organic:
        results["pesticides"] = False
        results["gmo"] = False
    else:
        results["pesticides"] = True

    return CriteriaResults(**results)


def describe_quality(quality: Quality, is_organic: bool) -> str:
    description = QUALITY_DESCRIPTIONS[quality]
    if is_organic:
        description += ORGANIC_NOTE
    return description


class IngredientClassifier(ABC):
    """Strategy interface: classify one ingredient name."""

    @abstractmethod
    async def classify(self, ingredient_name: str) -> IngredientAnalysis:
        """Classify an ingredient. Implementations never raise."""

    @abstractmethod
    def clear_cache(self) -> int:
        """Drop cached analyses. Returns the number of entries removed."""


# =============================================================================
# KEYWORD STRATEGY
# =============================================================================


class KeywordIngredientClassifier(IngredientClassifier):
    """Synchronous keyword/regex classifier. Makes no external calls."""

    def __init__(self, cache: Optional[MemoryCache] = None):
        self.cache = cache if cache is not None else MemoryCache.from_settings()

    def match_table(self, name: str) -> Optional[Quality]:
        """Return the tier of the first keyword table that matches, if any."""
        for quality, pattern in KEYWORD_TABLES:
            if pattern.search(name):
                return quality
        return None

    def analyze(self, ingredient_name: str) -> IngredientAnalysis:
        """
        Classify an ingredient synchronously.

        Args:
            ingredient_name: Ingredient token as parsed from the label

        Returns:
            IngredientAnalysis with quality in good|neutral|poor|unknown
        """
        normalized = Ingredient.normalize_name(ingredient_name)
        cached = self.cache.get(normalized)
        if cached is not None:
            return cached

        analysis = self._build_analysis(ingredient_name, normalized)
        self.cache.set(normalized, analysis)
        return analysis

    async def classify(self, ingredient_name: str) -> IngredientAnalysis:
        return self.analyze(ingredient_name)

    def clear_cache(self) -> int:
        return self.cache.clear()

    def _build_analysis(self, ingredient_name: str, normalized: str) -> IngredientAnalysis:
        if not normalized:
            return IngredientAnalysis(
                name=ingredient_name,
                quality=Quality.UNKNOWN,
                description=QUALITY_DESCRIPTIONS[Quality.UNKNOWN],
                criteria_results=evaluate_criteria(normalized, False),
            )

        is_organic, base_name = detect_organic(normalized)
        matched = self.match_table(base_name) if base_name else None

        # No positive match means the worst tier on this scale
        quality = _FOUR_TIER.get(matched, matched) if matched else Quality.POOR

        if is_organic:
            quality = raise_quality(quality, ceiling=Quality.GOOD)

        criteria = evaluate_criteria(normalized, is_organic)

        if quality == Quality.POOR or not criteria.ultra_processed:
            processing_level = ProcessingLevel.HIGH
        elif (quality == Quality.GOOD and is_organic) or _MINIMAL_CUES.search(base_name):
            processing_level = ProcessingLevel.MINIMAL
        else:
            processing_level = ProcessingLevel.MODERATE

        return IngredientAnalysis(
            name=ingredient_name,
            quality=quality,
            description=describe_quality(quality, is_organic),
            processing_level=processing_level,
            criteria_results=criteria,
            organic=is_organic,
        )
