"""
Product assembly: barcode lookup, progressive ingredient analysis, search.

A lookup returns a skeleton Product immediately (loading.ingredients=True)
and completes it in a background task. Every stage writes a new immutable
snapshot into the product cache; readers never see a half-updated object.
"""

import asyncio
import logging
import re
from typing import Callable, Optional

from app.config import settings
from app.models import (
    PLACEHOLDER_IMAGE,
    Allergen,
    Ingredient,
    IngredientAnalysis,
    Product,
    ProductLoading,
    Quality,
)
from app.services.ai_service import ClaudeService
from app.services.cache import MemoryCache, QuotaGuard
from app.services.curated_products import (
    NATURAL_FLAVOR_DESCRIPTION,
    SEARCH_IMAGE,
    find_demo_search_results,
    get_curated_product,
)
from app.services.description_resolver import DescriptionResolver
from app.services.generative_analyzer import GenerativeIngredientClassifier
from app.services.health_score import (
    UpstreamSignals,
    calculate_health_score,
    upstream_score,
)
from app.services.ingredient_analyzer import (
    IngredientClassifier,
    KeywordIngredientClassifier,
)
from app.services.ingredient_parser import (
    filter_ingredient_tokens,
    parse_ingredient_text,
    parse_product_ingredient_text,
)
from app.services.nutrient_analyzer import NutrientIngredientClassifier
from app.services.openfoodfacts_client import OpenFoodFactsClient


logger = logging.getLogger(__name__)


NO_INGREDIENT_DATA = (
    "Ingredient data is not available for this product in the Open Food Facts "
    "database. This could be because the product is new or the data hasn't "
    "been added yet."
)
NOT_FOUND_DESCRIPTION = (
    "This product was not found in the Open Food Facts database. This could be "
    "because the product is new or the data hasn't been added yet."
)
LOAD_ERROR_DESCRIPTION = "There was an error loading this product. Please try again later."
PROCESSING_ERROR_DESCRIPTION = "Unable to process ingredients at this time."
ANALYSIS_ERROR_DESCRIPTION = "Unable to analyze this ingredient at this time."

NATURAL_FLAVOR = "natural flavor"

# Localized ingredient text fields tried after the primary ones
_PRIMARY_TEXT_FIELDS = [
    "ingredients_text",
    "ingredients_text_with_allergens",
    "ingredients_text_en",
]
_TAG_PREFIX = re.compile(r"^[a-z]{2,3}:")


def placeholder_ingredient(description: str) -> Ingredient:
    return Ingredient(name="Ingredients", quality=Quality.UNKNOWN, description=description)


def placeholder_product(barcode: str, name: str, description: str) -> Product:
    """Fully loaded product with score 0 and a single unknown ingredient."""
    return Product(
        id=barcode,
        name=name,
        brand="Unknown",
        health_score=0,
        ingredients=[placeholder_ingredient(description)],
        loading=ProductLoading(ingredients=False),
    )


# =============================================================================
# UPSTREAM RECORD EXTRACTION
# =============================================================================


def _structured_ingredient_texts(record: dict) -> list[str]:
    structured = record.get("ingredients")
    if not isinstance(structured, list):
        return []
    texts = []
    for item in structured:
        text = item.get("text") if isinstance(item, dict) else None
        if isinstance(text, str) and text.strip():
            texts.append(text.strip())
    return texts


def _ingredient_text_fields(record: dict) -> list[str]:
    """Ingredient text fields in priority order."""
    localized = sorted(
        key
        for key in record
        if key.startswith("ingredients_text_") and key not in _PRIMARY_TEXT_FIELDS
    )
    return _PRIMARY_TEXT_FIELDS + localized


def has_ingredient_data(record: dict) -> bool:
    if _structured_ingredient_texts(record):
        return True
    return any(
        isinstance(record.get(field), str) and record[field].strip()
        for field in _ingredient_text_fields(record)
    )


def extract_ingredient_tokens(record: dict) -> list[str]:
    """
    Ingredient tokens from the first usable source.

    Priority: structured list, ingredients_text, the allergen-annotated text,
    the English text, then any other localized ingredients_text_* field.
    """
    structured = filter_ingredient_tokens(_structured_ingredient_texts(record))
    if structured:
        return structured

    for field in _ingredient_text_fields(record):
        text = record.get(field)
        if not isinstance(text, str) or not text.strip():
            continue
        tokens = parse_product_ingredient_text(text)
        if tokens:
            return tokens
    return []


def extract_allergens(record: dict) -> list[Allergen]:
    tags = record.get("allergens_tags")
    if isinstance(tags, list) and tags:
        names = [_TAG_PREFIX.sub("", str(tag)).strip() for tag in tags]
    else:
        raw = record.get("allergens")
        names = raw.split(",") if isinstance(raw, str) else []
        names = [_TAG_PREFIX.sub("", name.strip()).strip() for name in names]

    allergens = []
    seen = set()
    for name in names:
        if name and name.lower() not in seen:
            seen.add(name.lower())
            allergens.append(Allergen(name=name))
    return allergens


def _parse_price(value) -> float:
    try:
        return max(0.0, float(value or 0))
    except (TypeError, ValueError):
        return 0.0


def apply_natural_flavor_override(ingredients: list[Ingredient]) -> list[Ingredient]:
    """Force any "natural flavor" ingredient to poor with a fixed description."""
    result = []
    for ingredient in ingredients:
        if NATURAL_FLAVOR in ingredient.name.lower():
            ingredient = ingredient.model_copy(
                update={
                    "quality": Quality.POOR,
                    "description": NATURAL_FLAVOR_DESCRIPTION,
                }
            )
        result.append(ingredient)
    return result


def build_classifier(
    strategy: Optional[str] = None,
    ai_service: Optional[ClaudeService] = None,
    generation_guard: Optional[QuotaGuard] = None,
) -> IngredientClassifier:
    """
    Build the configured ingredient classifier.

    The generative strategy shares ai_service and generation_guard with the
    description resolver, so one quota error stops both.
    """
    strategy = strategy or settings.classifier_strategy
    if strategy == "keyword":
        return KeywordIngredientClassifier()
    if strategy == "nutrient":
        return NutrientIngredientClassifier()
    if strategy == "generative":
        return GenerativeIngredientClassifier(
            ai_service=ai_service, quota_guard=generation_guard
        )
    raise ValueError(f"Unknown classifier strategy: {strategy}")


class ProductService:
    """Looks up products and assembles their ingredient analysis."""

    def __init__(
        self,
        product_client: Optional[OpenFoodFactsClient] = None,
        classifier: Optional[IngredientClassifier] = None,
        description_resolver: Optional[DescriptionResolver] = None,
        product_cache: Optional[MemoryCache] = None,
        search_cache: Optional[MemoryCache] = None,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
        use_batches: Optional[bool] = None,
        max_ingredients: Optional[int] = None,
        barcode_pattern: Optional[str] = None,
        ai_service: Optional[ClaudeService] = None,
        classifier_strategy: Optional[str] = None,
    ):
        self.product_client = product_client or OpenFoodFactsClient()
        ai_service = ai_service or ClaudeService()
        if description_resolver is None:
            description_resolver = DescriptionResolver(
                generator=ai_service.generate_ingredient_description,
                quota_guard=QuotaGuard(
                    "generation", cooldown_seconds=settings.quota_cooldown_seconds
                ),
                enabled=settings.use_ai_descriptions and ai_service.configured,
            )
            if not ai_service.configured:
                logger.info("No Anthropic API key; using curated descriptions")
        self.description_resolver = description_resolver
        self.classifier = classifier or build_classifier(
            classifier_strategy,
            ai_service=ai_service,
            generation_guard=description_resolver.quota_guard,
        )
        self.product_cache = (
            product_cache if product_cache is not None else MemoryCache.from_settings()
        )
        self.search_cache = (
            search_cache if search_cache is not None else MemoryCache.from_settings()
        )
        self.batch_size = batch_size or settings.ingredient_batch_size
        self.batch_delay = (
            settings.ingredient_batch_delay if batch_delay is None else batch_delay
        )
        self.use_batches = (
            settings.use_batch_processing if use_batches is None else use_batches
        )
        self.max_ingredients = max_ingredients or settings.max_ingredients
        self.barcode_pattern = re.compile(
            barcode_pattern or settings.barcode_validation_pattern
        )

        self._completion_events: dict[str, asyncio.Event] = {}
        self._tasks: set[asyncio.Task] = set()
        self._pending_lookups: dict[str, asyncio.Future] = {}

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def validate_barcode(self, barcode: str) -> str:
        """
        Check a barcode's format.

        Returns:
            The stripped barcode

        Raises:
            InvalidBarcodeError: Barcode does not match the configured pattern
        """
        cleaned = (barcode or "").strip()
        if not self.barcode_pattern.fullmatch(cleaned):
            raise InvalidBarcodeError(f"Invalid barcode format: {barcode!r}")
        return cleaned

    # =========================================================================
    # INGREDIENT ANALYSIS
    # =========================================================================

    async def _analyze_one(self, name: str) -> Ingredient:
        try:
            analysis: IngredientAnalysis = await self.classifier.classify(name)
            description = await self.description_resolver.resolve(name, analysis.quality)
        except Exception:
            logger.exception("Ingredient analysis failed for %s", name)
            return Ingredient(
                name=name,
                quality=Quality.UNKNOWN,
                description=ANALYSIS_ERROR_DESCRIPTION,
            )
        return Ingredient(
            name=name,
            quality=analysis.quality,
            description=description,
            analysis=analysis,
        )

    async def analyze_ingredients(
        self,
        names: list[str],
        on_batch: Optional[Callable[[list[Ingredient]], None]] = None,
    ) -> list[Ingredient]:
        """
        Classify and describe ingredients, preserving input order.

        Batches run strictly one after another with batch_delay between
        them. on_batch receives the ingredients completed so far after each
        batch.
        """
        if not names:
            return []

        size = self.batch_size if self.use_batches else len(names)
        batches = [names[i : i + size] for i in range(0, len(names), size)]

        results: list[Ingredient] = []
        for index, batch in enumerate(batches):
            results.extend(
                await asyncio.gather(*(self._analyze_one(name) for name in batch))
            )
            if on_batch is not None:
                on_batch(list(results))
            if self.batch_delay and index < len(batches) - 1:
                await asyncio.sleep(self.batch_delay)

        return results

    async def analyze_text(self, text: str) -> tuple[list[Ingredient], int]:
        """Parse free ingredient text, analyze it and score it."""
        names = parse_ingredient_text(text)[: self.max_ingredients]
        ingredients = await self.analyze_ingredients(names)
        return ingredients, calculate_health_score(ingredients)

    # =========================================================================
    # PRODUCT ASSEMBLY
    # =========================================================================

    def assemble(self, barcode: str, record: dict) -> Product:
        """
        Build the skeleton Product for an upstream record.

        Without any ingredient data the skeleton is already complete with a
        single placeholder ingredient.
        """
        has_ingredients = has_ingredient_data(record)
        return Product(
            id=barcode,
            name=record.get("product_name") or "Unknown Product",
            brand=record.get("brands") or "Unknown Brand",
            image=record.get("image_url") or record.get("image_front_url") or PLACEHOLDER_IMAGE,
            health_score=0,
            ingredients=[] if has_ingredients else [placeholder_ingredient(NO_INGREDIENT_DATA)],
            allergens=extract_allergens(record),
            price=_parse_price(record.get("price")),
            product_type=record.get("product_type") or "unknown",
            loading=ProductLoading(ingredients=has_ingredients),
        )

    def _publish(self, product: Product) -> None:
        self.product_cache.set(product.id, product)

    async def _analyze_product_ingredients(self, product: Product, record: dict) -> Product:
        names = extract_ingredient_tokens(record)[: self.max_ingredients]
        if not names:
            logger.warning("No ingredient data found for product %s", product.id)
            return product.model_copy(
                update={
                    "ingredients": [placeholder_ingredient(NO_INGREDIENT_DATA)],
                    "loading": ProductLoading(ingredients=False),
                }
            )

        def publish_partial(ingredients: list[Ingredient]) -> None:
            self._publish(
                product.model_copy(
                    update={"ingredients": apply_natural_flavor_override(ingredients)}
                )
            )

        ingredients = await self.analyze_ingredients(names, on_batch=publish_partial)
        ingredients = apply_natural_flavor_override(ingredients)
        logger.info("Processed %d ingredients for product %s", len(ingredients), product.id)

        return product.model_copy(
            update={
                "ingredients": ingredients,
                "health_score": calculate_health_score(
                    ingredients, UpstreamSignals.from_record(record)
                ),
                "loading": ProductLoading(ingredients=False),
            }
        )

    async def complete(self, product: Product, record: dict) -> Product:
        """
        Analyze ingredients for a skeleton product and publish snapshots.

        Never raises: any failure publishes a placeholder ingredient with
        loading complete.
        """
        event = self._completion_events.get(product.id)
        try:
            final = await self._analyze_product_ingredients(product, record)
        except Exception:
            logger.exception("Ingredient processing failed for product %s", product.id)
            final = product.model_copy(
                update={
                    "ingredients": [placeholder_ingredient(PROCESSING_ERROR_DESCRIPTION)],
                    "loading": ProductLoading(ingredients=False),
                }
            )

        self._publish(final)
        if event is not None:
            event.set()
        return final

    def _schedule_completion(self, product: Product, record: dict) -> None:
        self._completion_events[product.id] = asyncio.Event()
        task = asyncio.create_task(self.complete(product, record))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # =========================================================================
    # PUBLIC LOOKUPS
    # =========================================================================

    async def lookup_product(self, barcode: str) -> Product:
        """
        Look up a product by barcode.

        Returns the cached snapshot when present (possibly still loading),
        a curated product, or a freshly assembled skeleton whose ingredients
        complete in the background. Unknown barcodes and upstream failures
        yield placeholder products.

        Raises:
            InvalidBarcodeError: Barcode format is invalid
        """
        barcode = self.validate_barcode(barcode)

        cached = self.product_cache.get(barcode)
        if cached is not None:
            return cached

        curated = get_curated_product(barcode)
        if curated is not None:
            logger.info("Using curated product for %s", barcode)
            self._publish(curated)
            return curated

        # Concurrent lookups of the same barcode share one upstream fetch
        pending = self._pending_lookups.get(barcode)
        if pending is None:
            pending = asyncio.ensure_future(self._fetch_and_assemble(barcode))
            self._pending_lookups[barcode] = pending
            pending.add_done_callback(lambda _: self._pending_lookups.pop(barcode, None))
        return await asyncio.shield(pending)

    async def _fetch_and_assemble(self, barcode: str) -> Product:
        try:
            record = await self.product_client.get_product(barcode)
        except Exception as e:
            # Not cached so the next lookup retries upstream
            logger.error("Error fetching product %s: %s", barcode, e)
            return placeholder_product(barcode, "Error Loading Product", LOAD_ERROR_DESCRIPTION)

        if record is None:
            logger.info("Product %s not found upstream", barcode)
            product = placeholder_product(barcode, "Product Not Found", NOT_FOUND_DESCRIPTION)
            self._publish(product)
            return product

        product = self.assemble(barcode, record)
        self._publish(product)
        if product.is_loading:
            self._schedule_completion(product, record)
        return product

    def get_cached_product(self, barcode: str) -> Optional[Product]:
        return self.product_cache.get(barcode)

    async def wait_for_product(self, barcode: str, timeout: float = 30.0) -> Optional[Product]:
        """
        Wait until a product's ingredients finish loading.

        Returns the latest snapshot, still loading if the timeout expired.
        Timing out does not cancel the background work.
        """
        cached = self.product_cache.get(barcode)
        event = self._completion_events.get(barcode)
        if event is None or (cached is not None and not cached.is_loading):
            return cached

        try:
            await asyncio.wait_for(event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.info("Timed out waiting for product %s", barcode)
        return self.product_cache.get(barcode)

    def _summarize(self, record: dict) -> Product:
        code = str(record["code"])
        cached = self.product_cache.get(code)
        if cached is not None:
            health_score = cached.health_score
        else:
            health_score = upstream_score(UpstreamSignals.from_record(record))

        return Product(
            id=code,
            name=record.get("product_name") or "Unknown Product",
            brand=record.get("brands") or "Unknown Brand",
            image=record.get("image_front_url") or record.get("image_url") or SEARCH_IMAGE,
            health_score=health_score,
            allergens=extract_allergens(record),
            product_type=record.get("product_type") or "unknown",
        )

    async def search_products(self, query: str) -> list[Product]:
        """Search products by name. Failures return an empty list."""
        query = (query or "").strip()
        if not query:
            return []

        cache_key = query.lower()
        cached = self.search_cache.get(cache_key)
        if cached is not None:
            return cached

        demo = find_demo_search_results(query)
        if demo is not None:
            self.search_cache.set(cache_key, demo)
            return demo

        try:
            records = await self.product_client.search_products(query, page_size=5)
        except Exception as e:
            logger.error("Error searching products for %r: %s", query, e)
            return []

        products = [self._summarize(record) for record in records if record.get("code")]
        self.search_cache.set(cache_key, products)
        return products

    def clear_all_caches(self) -> dict:
        """Drop every cache. Returns the number of entries removed per cache."""
        cleared = {
            "products": self.product_cache.clear(),
            "searches": self.search_cache.clear(),
            "analyses": self.classifier.clear_cache(),
            "descriptions": self.description_resolver.clear_cache(),
        }
        self._completion_events.clear()
        logger.info("All caches cleared: %s", cleared)
        return cleared


class InvalidBarcodeError(ValueError):
    """Barcode does not match the accepted format."""

    pass


product_service = ProductService()
