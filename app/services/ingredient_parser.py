"""
Ingredient text parsing: delimiter normalization and non-ingredient filtering.

Upstream ingredient text is free-form and inconsistently delimited. Parsing
happens in three independent steps:
1. split_ingredient_text() rewrites every delimiter to a comma and splits
2. is_non_ingredient() / is_likely_ingredient() reject boilerplate tokens
3. clean_ingredient_text() strips parentheticals, markers and percentages
"""

import re

# Boilerplate phrases that are never ingredients (matched as equal or prefix)
NON_INGREDIENT_PHRASES = [
    "contains 2% or less of",
    "contains 2 percent or less of",
    "contains less than 2% of",
    "contains less than 2 percent of",
    "2% or less of",
    "2 percent or less of",
    "less than 2% of",
    "less than 2 percent of",
    "may contain",
    "contains",
    "ingredients:",
    "ingredient list:",
    "manufactured in a facility that also processes",
    "manufactured on equipment that processes",
    "made in a facility that also processes",
    "made on equipment that processes",
    "processed in a facility that also handles",
    "for color",
    "for freshness",
    "as a preservative",
    "to preserve freshness",
    "to maintain color",
    "to maintain freshness",
    "added for freshness",
    "added for color",
    "added as a preservative",
]

_UNITS = (
    r"fl\.?\s*oz|oz|ounces?|lbs?|pounds?|g|grams?|kg|kilograms?|mg|mcg|"
    r"ml|milliliters?|l|liters?|litres?"
)

NON_INGREDIENT_PATTERNS = [
    # Percentage qualifiers
    re.compile(r"contains?\s*\d+(\.\d+)?\s*(%|percent)?\s*or\s*less", re.I),
    re.compile(r"less\s+than\s+\d+(\.\d+)?\s*(%|percent)\s*of", re.I),
    re.compile(r"\d+(\.\d+)?\s*(%|percent)\s*or\s*less\s*of", re.I),
    # Manufacturing notices
    re.compile(r"manufactured\s+in\s+a\s+facility", re.I),
    re.compile(r"manufactured\s+on\s+(shared\s+)?equipment", re.I),
    re.compile(r"made\s+in\s+a\s+facility", re.I),
    re.compile(r"made\s+on\s+(shared\s+)?equipment", re.I),
    re.compile(r"processed\s+in\s+a\s+facility", re.I),
    # Nutrition facts fragments
    re.compile(r"nutrition\s*facts", re.I),
    re.compile(r"serving\s*size", re.I),
    re.compile(r"servings?\s+per", re.I),
    re.compile(r"\bcalories\b", re.I),
    re.compile(r"total\s*fat", re.I),
    re.compile(r"saturated\s*fat\s*\d", re.I),
    re.compile(r"trans\s*fat\s*\d", re.I),
    re.compile(r"\bcholesterol\b", re.I),
    re.compile(r"\bsodium\s*\d", re.I),
    re.compile(r"total\s*carbohydrates?", re.I),
    re.compile(r"dietary\s*fiber\s*\d", re.I),
    re.compile(r"total\s*sugars?", re.I),
    re.compile(r"\bprotein\s*\d", re.I),
    re.compile(r"\bvitamin\s+[a-z]\d*\s+\d+(\.\d+)?\s*%", re.I),
    re.compile(r"daily\s*value", re.I),
    # Storage and handling
    re.compile(r"store\s+in\s+a\s+(cool|dry)", re.I),
    re.compile(r"keep\s+(refrigerated|frozen)", re.I),
    re.compile(r"best\s+(before|by)\b", re.I),
    re.compile(r"\buse\s+by\b", re.I),
    re.compile(r"expiration", re.I),
    re.compile(r"refrigerate\s+after", re.I),
    re.compile(r"once\s+opened", re.I),
    # Product and distribution information
    re.compile(r"lot\s+(number|no\b)", re.I),
    re.compile(r"batch\s+code", re.I),
    re.compile(r"\bupc\b", re.I),
    re.compile(r"distributed\s+by", re.I),
    re.compile(r"manufactured\s+by", re.I),
    re.compile(r"\bproduct\s+of\b", re.I),
    re.compile(r"\bmade\s+in\b", re.I),
    re.compile(r"\bpacked\s+by\b", re.I),
    # Marketing
    re.compile(r"www\.", re.I),
    re.compile(r"\.com\b", re.I),
    re.compile(r"visit\s+us", re.I),
    re.compile(r"find\s+us", re.I),
    re.compile(r"follow\s+us", re.I),
    re.compile(r"like\s+us", re.I),
    re.compile(r"questions\s+or\s+comments", re.I),
    re.compile(r"call\s+us", re.I),
    re.compile(r"contact\s+us", re.I),
    re.compile(r"satisfaction\s+guaranteed", re.I),
    # Legal notices
    re.compile(r"\bpatent", re.I),
    re.compile(r"trademark", re.I),
    re.compile(r"copyright", re.I),
    re.compile(r"all\s+rights\s+reserved", re.I),
    # Units of measure
    re.compile(r"net\s+wt", re.I),
    re.compile(r"net\s+weight", re.I),
    re.compile(r"fluid\s+ounce", re.I),
    re.compile(rf"^\d+(\.\d+)?\s*({_UNITS})$", re.I),
    re.compile(rf"\b\d+(\.\d+)?\s*({_UNITS})\b", re.I),
    # Preparation / cooking instructions
    re.compile(r"\bpreparation\b", re.I),
    re.compile(r"cooking\s+instructions", re.I),
    re.compile(r"\bmicrowave", re.I),
    re.compile(r"conventional\s+oven", re.I),
    re.compile(r"\bstovetop\b", re.I),
    re.compile(r"\bbring\s+to\s+a\s+boil\b", re.I),
    re.compile(r"\bsimmer\b", re.I),
    re.compile(r"\bbake\s+(at|for)\b", re.I),
    re.compile(r"\bpreheat", re.I),
    re.compile(r"shake\s+well", re.I),
    re.compile(r"stir\s+well", re.I),
]

MAX_INGREDIENT_WORDS = 10

# Leading label before the actual list, e.g. "Ingredients: ..."
_LIST_PREFIX = re.compile(
    r"\b(ingredients?(\s+list)?|made\s+(with|from))\s*:", re.I
)

_SIMPLE_DELIMITERS = re.compile(r"\s*[|;•·\n\r]+\s*")
# Sentence periods only; decimals and domains (2.5%, www.x.com) stay intact
_PERIOD_DELIMITER = re.compile(r"\s*\.(?=\s|$)\s*")
# Hyphens/dashes with whitespace on either side; in-word hyphens stay
_DASH_DELIMITER = re.compile(r"\s*[–—]\s*|\s+-+\s*|\s*-+\s+")

_PARENTHETICAL = re.compile(r"\([^)]*\)|\[[^\]]*\]|\{[^}]*\}")
_STRAY_BRACKETS = re.compile(r"[()\[\]{}]")
# Footnote markers and the underscores around allergens ("_milk_")
_MARKERS = re.compile(r"[*†‡_]")
_PERCENTAGE = re.compile(r"\d+(\.\d+)?\s*%")
_NUMERIC_ONLY = re.compile(r"^\d+(\.\d+)?%?$")


def _normalize_delimiters(text: str) -> str:
    text = _SIMPLE_DELIMITERS.sub(", ", text)
    text = _PERIOD_DELIMITER.sub(", ", text)
    text = _DASH_DELIMITER.sub(", ", text)
    return text


def _split_top_level(text: str) -> list[str]:
    """Split on commas that are not inside brackets.

    Falls back to a plain split when the brackets are unbalanced.
    """
    tokens = []
    current = []
    depth = 0
    for char in text:
        if char in "([{":
            depth += 1
        elif char in ")]}" and depth:
            depth -= 1

        if char == "," and depth == 0:
            tokens.append("".join(current))
            current = []
        else:
            current.append(char)
    tokens.append("".join(current))

    if depth:
        tokens = text.split(",")

    return [token.strip() for token in tokens if token.strip()]


def split_ingredient_text(text: str) -> list[str]:
    """
    Rewrite all delimiters to commas and split into trimmed tokens.

    Handles commas, semicolons, pipes, bullets, sentence periods, separator
    hyphens and newlines. Empty or missing text yields an empty list.

    Args:
        text: Raw ingredient text

    Returns:
        Ordered list of non-empty tokens
    """
    if not text or not text.strip():
        return []
    return _split_top_level(_normalize_delimiters(text))


def clean_ingredient_text(text: str) -> str:
    """Strip parenthetical asides, annotation markers and inline percentages."""
    cleaned = text.strip()
    cleaned = _PARENTHETICAL.sub("", cleaned)
    cleaned = _STRAY_BRACKETS.sub("", cleaned)
    cleaned = _MARKERS.sub("", cleaned)
    cleaned = _PERCENTAGE.sub("", cleaned)
    cleaned = " ".join(cleaned.split())
    return cleaned.strip(" .:-")


def is_non_ingredient(text: str) -> bool:
    """Check if a token is (or starts with) a boilerplate phrase."""
    lower_text = text.lower().strip()
    return any(
        lower_text == phrase or lower_text.startswith(phrase)
        for phrase in NON_INGREDIENT_PHRASES
    )


def is_likely_ingredient(text: str) -> bool:
    """
    Check if a token looks like a real ingredient.

    Rejects nutrition facts, storage/handling, legal and marketing notices,
    units of measure and cooking instructions, anything longer than
    MAX_INGREDIENT_WORDS words, and bare numbers/percentages.
    """
    lower_text = text.lower().strip()
    if not lower_text:
        return False

    if any(pattern.search(lower_text) for pattern in NON_INGREDIENT_PATTERNS):
        return False

    if len(lower_text.split()) > MAX_INGREDIENT_WORDS:
        return False

    if _NUMERIC_ONLY.match(lower_text):
        return False

    return True


def parse_ingredient_text(text: str) -> list[str]:
    """
    Parse ingredient text into a clean list of ingredients.

    Used for free-text analysis requests. Filters boilerplate phrases only.

    Example:
        >>> parse_ingredient_text("Sugar, Salt; Water.")
        ['Sugar', 'Salt', 'Water']
    """
    cleaned = (
        clean_ingredient_text(token)
        for token in split_ingredient_text(text)
        if not is_non_ingredient(token)
    )
    return [token for token in cleaned if token]


def parse_product_ingredient_text(text: str) -> list[str]:
    """
    Parse an upstream product's ingredient text.

    Skips any label before the list ("Ingredients:", "Made with:"), then
    applies both the boilerplate phrase list and the likely-ingredient
    heuristics before cleaning.
    """
    if not text:
        return []

    match = _LIST_PREFIX.search(text)
    if match:
        text = text[match.end():]

    return filter_ingredient_tokens(split_ingredient_text(text))


def filter_ingredient_tokens(tokens: list[str]) -> list[str]:
    """Filter and clean already-split tokens (e.g. structured upstream lists)."""
    result = []
    for token in tokens:
        if not token or is_non_ingredient(token) or not is_likely_ingredient(token):
            continue
        cleaned = clean_ingredient_text(token)
        if cleaned:
            result.append(cleaned)
    return result
