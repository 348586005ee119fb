"""Test fixtures for Smart Aisle."""

from tests.fixtures.mocks import (
    MockClaudeService,
    MockOpenFoodFactsClient,
    MockUSDAClient,
)

__all__ = [
    "MockClaudeService",
    "MockOpenFoodFactsClient",
    "MockUSDAClient",
]
