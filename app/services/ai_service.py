"""
Claude AI integration service for ingredient descriptions and classification.

This service provides two AI capabilities:
1. Short ingredient descriptions for an already-assigned quality tier (Haiku)
2. Generative ingredient classification with criteria results (Haiku)

Callers treat every failure as recoverable: description_resolver.py and
generative_analyzer.py fall back to curated or rule-based output.
"""

import json
import re
import asyncio
import random
import logging
from functools import wraps

from anthropic import Anthropic
import anthropic
import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from app.config import settings
from app.services.ai_schemas import IngredientClassificationSchema
from app.services.prompts import (
    INGREDIENT_DESCRIPTION_SYSTEM_PROMPT,
    INGREDIENT_CLASSIFICATION_SYSTEM_PROMPT,
    build_description_message,
    build_classification_message,
)


logger = logging.getLogger(__name__)

# Error text from the API that means the account cannot make more calls
_QUOTA_MESSAGE_KEYWORDS = ("credit balance", "quota", "billing")


_CODE_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


def _strip_markdown_json(text: str) -> str:
    """Return the body of the first fenced code block, or the text unchanged."""
    match = _CODE_FENCE.search(text)
    return match.group(1).strip() if match else text


def _fix_trailing_commas(text: str) -> str:
    """Drop commas directly before a closing brace or bracket."""
    return _TRAILING_COMMA.sub(r"\1", text)


def _translate_api_error(e: anthropic.APIError) -> Exception:
    """Map an Anthropic SDK error onto this module's exceptions."""
    if isinstance(e, anthropic.APIConnectionError):
        return ServiceUnavailableError("AI service temporarily unavailable")
    if isinstance(e, anthropic.RateLimitError):
        return RateLimitError("Too many requests, please try again in 1 minute")
    if isinstance(e, anthropic.APIStatusError):
        message = str(e.message).lower()
        if e.status_code == 402 or any(k in message for k in _QUOTA_MESSAGE_KEYWORDS):
            return QuotaExceededError(f"AI quota exceeded: {e.message}")
        if e.status_code >= 500:
            return ServiceUnavailableError("AI service error")
        return ValueError(f"Request error: {e.message}")
    return ServiceUnavailableError(f"AI service error: {e}")


def retry_on_connection_error(max_attempts=3, base_delay=1.0):
    """
    Retry decorator for API calls that may fail due to transient network issues.

    Args:
        max_attempts: Maximum retry attempts (default 3)
        base_delay: Base delay in seconds for exponential backoff (default 1.0)
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except anthropic.APIConnectionError as e:
                    last_exception = e

                    if attempt < max_attempts - 1:
                        # Exponential backoff with jitter
                        delay = base_delay * (2**attempt)
                        jitter = delay * 0.1 * (2 * random.random() - 1)
                        sleep_time = delay + jitter

                        logger.warning(
                            "Connection error on attempt %d/%d, retrying in %.1fs...",
                            attempt + 1,
                            max_attempts,
                            sleep_time,
                        )
                        await asyncio.sleep(sleep_time)
                    else:
                        logger.error("All %d attempts failed", max_attempts)

            raise ServiceUnavailableError(
                "AI service temporarily unavailable after retries"
            ) from last_exception

        return wrapper

    return decorator


class ClaudeService:
    """Centralized Claude API integration for ingredient text generation."""

    def __init__(self):
        timeout = httpx.Timeout(
            timeout=settings.anthropic_timeout,
            connect=settings.anthropic_connect_timeout,
        )
        self.client = Anthropic(api_key=settings.anthropic_api_key, timeout=timeout)
        self.description_model = settings.description_model
        self.classification_model = settings.classification_model

    @property
    def configured(self) -> bool:
        return bool(settings.anthropic_api_key)

    # =========================================================================
    # SCHEMA VALIDATION + CONVERSATIONAL RETRY
    # =========================================================================

    def _call_with_schema_retry(
        self,
        messages: list[dict],
        schema_class: type[BaseModel],
        request_params: dict,
        max_retries: int = 2,
        prefill: str | None = "{",
    ) -> dict:
        """
        Call Claude and validate the JSON reply against schema_class.

        A reply that is empty or fails validation is appended to messages
        together with the error, and the model is asked again.

        Args:
            messages: Conversation so far (extended on retry)
            schema_class: Pydantic model the reply must satisfy
            request_params: Keyword arguments for client.messages.create,
                            excluding messages
            max_retries: Extra attempts after the first call
            prefill: Assistant prefill, or None

        Returns:
            The validated reply as a dict

        Raises:
            ValueError: No attempt produced a valid reply
        """
        adapter = TypeAdapter(schema_class)
        attempts = 1 + max_retries
        error_msg = ""

        for attempt in range(attempts):
            call_messages = list(messages)
            if prefill:
                call_messages.append({"role": "assistant", "content": prefill})

            response = self.client.messages.create(messages=call_messages, **request_params)
            raw_text = "".join(
                block.text for block in response.content if hasattr(block, "text")
            ).strip()

            if not raw_text:
                error_msg = "empty response"
                messages.append({"role": "assistant", "content": "(empty response)"})
                messages.append(
                    {
                        "role": "user",
                        "content": "Your response contained no text. Please respond with valid JSON.",
                    }
                )
                continue

            reply = (prefill or "") + raw_text
            try:
                parsed = json.loads(_fix_trailing_commas(_strip_markdown_json(reply)))
                return adapter.validate_python(parsed).model_dump()
            except (json.JSONDecodeError, ValidationError) as e:
                error_msg = str(e)
                logger.warning(
                    "%s validation failed (attempt %d/%d): %s",
                    schema_class.__name__,
                    attempt + 1,
                    attempts,
                    error_msg,
                )

            messages.append({"role": "assistant", "content": reply})
            messages.append(
                {
                    "role": "user",
                    "content": (
                        f"Your response had a schema error:\n{error_msg}\n\n"
                        "Please fix and return valid JSON matching the required schema."
                    ),
                }
            )

        raise ValueError(
            f"AI response failed schema validation after {attempts} attempts: {error_msg}"
        )

    # =========================================================================
    # INGREDIENT DESCRIPTION
    # =========================================================================

    async def generate_ingredient_description(
        self, ingredient_name: str, quality: str
    ) -> str:
        """
        Generate a 30-50 word description for an ingredient and its quality tier.

        Args:
            ingredient_name: Normalized ingredient name
            quality: Quality tier value (e.g. "poor")

        Returns:
            Trimmed description text

        Raises:
            QuotaExceededError: Account quota/billing exhausted
            RateLimitError: Too many requests
            ServiceUnavailableError: Network or server failure
            ValueError: Empty response or rejected request
        """
        if not self.configured:
            raise ServiceUnavailableError("AI service not configured")

        try:
            response = self.client.messages.create(
                model=self.description_model,
                max_tokens=150,
                temperature=0.3,
                system=INGREDIENT_DESCRIPTION_SYSTEM_PROMPT,
                messages=[
                    {
                        "role": "user",
                        "content": build_description_message(ingredient_name, quality),
                    }
                ],
            )
        except anthropic.APIError as e:
            raise _translate_api_error(e) from e

        text = "".join(
            block.text for block in response.content if hasattr(block, "text")
        ).strip()
        if not text:
            raise ValueError("No text content in AI response")
        return text

    # =========================================================================
    # INGREDIENT CLASSIFICATION
    # =========================================================================

    @retry_on_connection_error(max_attempts=2, base_delay=1.0)
    async def classify_ingredient(self, ingredient_name: str) -> dict:
        """
        Classify an ingredient with the model.

        Returns:
            Dict matching IngredientClassificationSchema:
            {
                "quality": "good" | "neutral" | "poor" | "unknown",
                "description": str,
                "processing_level": "minimal" | "moderate" | "high",
                "criteria_results": {criterion: bool, ...}
            }
        """
        if not self.configured:
            raise ServiceUnavailableError("AI service not configured")

        messages = [
            {"role": "user", "content": build_classification_message(ingredient_name)}
        ]
        request_params = {
            "model": self.classification_model,
            "max_tokens": 400,
            "temperature": 0.3,
            "system": INGREDIENT_CLASSIFICATION_SYSTEM_PROMPT,
        }

        try:
            validated = self._call_with_schema_retry(
                messages=messages,
                schema_class=IngredientClassificationSchema,
                request_params=request_params,
            )
        except anthropic.APIConnectionError:
            # Let the decorator retry
            raise
        except anthropic.APIError as e:
            raise _translate_api_error(e) from e

        return validated


# =============================================================================
# CUSTOM EXCEPTIONS
# =============================================================================


class ServiceUnavailableError(Exception):
    """AI service is temporarily unavailable."""

    pass


class RateLimitError(Exception):
    """Rate limit exceeded."""

    is_quota_error = True


class QuotaExceededError(Exception):
    """Account quota or billing limit reached."""

    is_quota_error = True
