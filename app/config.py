from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    anthropic_api_key: str = ""

    description_model: str = "claude-haiku-4-5-20251001"
    classification_model: str = "claude-haiku-4-5-20251001"

    # Anthropic API timeout settings (seconds)
    anthropic_timeout: int = 30
    anthropic_connect_timeout: int = 10

    # Upstream data sources
    openfoodfacts_base_url: str = "https://world.openfoodfacts.org"
    usda_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    usda_api_key: str = "DEMO_KEY"
    http_timeout: float = 10.0

    # Barcode format check (7-14 digits, or 8-14 uppercase alphanumerics)
    barcode_validation_pattern: str = r"^\d{7,14}$|^[A-Z0-9]{8,14}$"

    # Ingredient analysis
    classifier_strategy: str = "keyword"  # keyword | nutrient | generative
    max_ingredients: int = 30
    use_batch_processing: bool = True
    ingredient_batch_size: int = 3
    ingredient_batch_delay: float = 0.5  # seconds between batches
    use_ai_descriptions: bool = True
    description_max_retries: int = 2
    description_retry_delay: float = 1.0  # multiplied by attempt number

    # Health score weight for "unknown" quality (0.0 folds it into "poor")
    unknown_quality_weight: float = 0.3

    # In-memory caches (None = unbounded / never expires)
    cache_max_entries: Optional[int] = None
    cache_ttl_seconds: Optional[float] = None

    # Quota guard cooldown (None = sticky for the process lifetime)
    quota_cooldown_seconds: Optional[float] = None

    class Config:
        env_file = ".env"


settings = Settings()
