"""
Hand-authored catalogue data.

Curated barcodes bypass the upstream lookup and ingredient pipeline entirely.
Demo search hits are returned for a few well-known queries.
"""

from typing import Optional

from app.models import (
    Allergen,
    AllergenSeverity,
    Ingredient,
    Product,
    ProductLoading,
    Quality,
)


NATURAL_FLAVOR_DESCRIPTION = (
    "A broad term that can include numerous compounds. While FDA-regulated, "
    "specific ingredients aren't required to be disclosed. The Center for Science "
    "in the Public Interest notes some natural flavors may contain allergens or "
    "additives of concern."
)

SEARCH_IMAGE = "/placeholder.svg?height=100&width=100"


def _ingredient(name: str, quality: Quality, description: str) -> Ingredient:
    return Ingredient(name=name, quality=quality, description=description)


CURATED_PRODUCTS = {
    "747599409943": Product(
        id="747599409943",
        name="Milk Chocolate Caramel Square",
        brand="Ghirardelli",
        health_score=35,
        ingredients=[
            _ingredient(
                "Sugar",
                Quality.POOR,
                "Provides calories with no essential nutrients. Excessive consumption is linked to obesity, type 2 diabetes, and heart disease according to the World Health Organization, which recommends limiting added sugars to less than 10% of daily calories.",
            ),
            _ingredient(
                "Corn Syrup",
                Quality.POOR,
                "Highly processed sweetener made from corn starch. Contains no essential nutrients and contributes to added sugar intake. Regular consumption may contribute to metabolic issues and weight gain.",
            ),
            _ingredient(
                "Milk Chocolate",
                Quality.NEUTRAL,
                "Contains cocoa solids, milk solids, and sugar. Provides some antioxidants from cocoa, but also contains significant sugar and fat. Moderate consumption may offer some cardiovascular benefits.",
            ),
            _ingredient(
                "Milk",
                Quality.GOOD,
                "Good source of calcium, protein, and vitamins including B12 and D. Supports bone health and provides essential nutrients, though some individuals may have difficulty digesting lactose.",
            ),
            _ingredient(
                "Cream",
                Quality.NEUTRAL,
                "High in fat and calories but provides some vitamins A and D. Contains saturated fat which should be consumed in moderation according to the American Heart Association guidelines.",
            ),
            _ingredient(
                "Butter",
                Quality.NEUTRAL,
                "Contains fat-soluble vitamins and fatty acids, but also high in saturated fat. The American Heart Association recommends limiting saturated fat intake to reduce cardiovascular disease risk.",
            ),
            _ingredient(
                "Cocoa Butter",
                Quality.NEUTRAL,
                "Natural fat extracted from cocoa beans. Contains some antioxidants and has a neutral effect on cholesterol levels according to some studies, but is high in calories.",
            ),
            _ingredient(
                "Soy Lecithin",
                Quality.NEUTRAL,
                "Emulsifier used to maintain product consistency. Generally recognized as safe, though some individuals may be sensitive to soy-derived products.",
            ),
            _ingredient("Natural Flavor", Quality.POOR, NATURAL_FLAVOR_DESCRIPTION),
            _ingredient(
                "Vanilla Extract",
                Quality.GOOD,
                "Natural flavoring derived from vanilla beans. Contains small amounts of antioxidants and has been used traditionally for its aromatic properties and subtle flavor enhancement.",
            ),
        ],
        allergens=[
            Allergen(name="Milk", severity=AllergenSeverity.HIGH),
            Allergen(name="Soy", severity=AllergenSeverity.MEDIUM),
            Allergen(name="May contain traces of nuts", severity=AllergenSeverity.HIGH),
        ],
        price=3.99,
        product_type="chocolate",
        loading=ProductLoading(ingredients=False),
    ),
    "0855140002175": Product(
        id="0855140002175",
        name="Organic Coconut Milk",
        brand="Native Forest",
        health_score=88,
        ingredients=[
            _ingredient(
                "Organic Coconut Milk",
                Quality.GOOD,
                "Minimally processed extract from organic coconuts. Rich in medium-chain triglycerides (MCTs) that may support metabolism and provide quick energy. Contains beneficial minerals like manganese and copper.",
            ),
            _ingredient(
                "Organic Guar Gum",
                Quality.NEUTRAL,
                "Natural thickener derived from guar beans. Provides dietary fiber and helps maintain product consistency. Generally recognized as safe and may have prebiotic benefits for gut health.",
            ),
        ],
        allergens=[Allergen(name="Coconut", severity=AllergenSeverity.HIGH)],
        price=4.99,
        store="Whole Foods",
        product_type="milk",
        loading=ProductLoading(ingredients=False),
    ),
}

# (query keyword, summary product) checked in order
DEMO_SEARCH_RESULTS = [
    (
        "granola",
        Product(
            id="9780201379624",
            name="Organic Granola Cereal",
            brand="Nature's Path",
            image=SEARCH_IMAGE,
            health_score=92,
            price=5.29,
            store="Whole Foods",
            product_type="granola",
        ),
    ),
    (
        "cookie",
        Product(
            id="123456789012",
            name="Chocolate Chip Cookies",
            brand="Sweet Delights",
            image=SEARCH_IMAGE,
            health_score=45,
            price=3.99,
            store="Grocery Store",
            product_type="cookies",
        ),
    ),
    (
        "spinach",
        Product(
            id="987654321098",
            name="Organic Baby Spinach",
            brand="Earthbound Farm",
            image=SEARCH_IMAGE,
            health_score=98,
            price=3.99,
            store="Whole Foods",
            product_type="vegetables",
        ),
    ),
]


def get_curated_product(barcode: str) -> Optional[Product]:
    return CURATED_PRODUCTS.get(barcode)


def find_demo_search_results(query: str) -> Optional[list[Product]]:
    """Return the demo hit for the first keyword contained in the query."""
    lowered = query.lower()
    for keyword, product in DEMO_SEARCH_RESULTS:
        if keyword in lowered:
            return [product]
    return None
