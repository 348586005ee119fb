"""
Test configuration and fixtures for Smart Aisle.

- ProductService wired to in-memory fakes (no network, no delays)
- TestClient with the module-level product service swapped out
- Mock Claude service for description/classification tests
"""

from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sse_starlette.sse import AppStatus

from app.main import app
from app.services.cache import MemoryCache, QuotaGuard
from app.services.description_resolver import DescriptionResolver
from app.services.ingredient_analyzer import KeywordIngredientClassifier
from app.services.product_service import ProductService
from tests.fixtures.mocks import MockClaudeService, MockOpenFoodFactsClient


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def mock_claude_service() -> MockClaudeService:
    """Deterministic stand-in for ClaudeService."""
    return MockClaudeService()


@pytest.fixture
def mock_product_client() -> MockOpenFoodFactsClient:
    """In-memory stand-in for OpenFoodFactsClient."""
    return MockOpenFoodFactsClient()


@pytest.fixture
def description_resolver(mock_claude_service) -> DescriptionResolver:
    """Resolver backed by the mock generator, with retries but no sleeping."""
    return DescriptionResolver(
        generator=mock_claude_service.generate_ingredient_description,
        cache=MemoryCache(),
        quota_guard=QuotaGuard("description"),
        max_retries=2,
        retry_delay=0,
        enabled=True,
    )


@pytest.fixture
def product_service(mock_product_client, description_resolver) -> ProductService:
    """ProductService with fakes for every external dependency."""
    return ProductService(
        product_client=mock_product_client,
        classifier=KeywordIngredientClassifier(cache=MemoryCache()),
        description_resolver=description_resolver,
        product_cache=MemoryCache(),
        search_cache=MemoryCache(),
        batch_size=3,
        batch_delay=0,
        use_batches=True,
    )


# =============================================================================
# API Fixtures
# =============================================================================


@pytest.fixture
def client(product_service, monkeypatch) -> Generator[TestClient, None, None]:
    """TestClient whose routers use the fixture product service."""
    monkeypatch.setattr("app.api.products.product_service", product_service)
    monkeypatch.setattr("app.api.ingredients.product_service", product_service)
    # sse-starlette binds its exit event to the first event loop it sees
    monkeypatch.setattr(AppStatus, "should_exit_event", None, raising=False)

    with TestClient(app) as test_client:
        yield test_client


# =============================================================================
# pytest markers
# =============================================================================


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m not slow')"
    )
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
