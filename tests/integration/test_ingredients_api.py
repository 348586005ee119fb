"""
Integration tests for ingredient analysis and app-level endpoints.
"""

from fastapi.testclient import TestClient

from app.services.ai_service import QuotaExceededError


class TestAnalyzeEndpoint:
    """Tests for POST /ingredients/analyze."""

    def test_analyze_text(self, client: TestClient):
        response = client.post("/ingredients/analyze", json={"text": "Sugar, Salt; Water."})

        assert response.status_code == 200
        data = response.json()
        assert data["healthScore"] == 60
        assert [i["name"] for i in data["ingredients"]] == ["Sugar", "Salt", "Water"]
        assert [i["quality"] for i in data["ingredients"]] == ["poor", "neutral", "neutral"]
        sugar = data["ingredients"][0]
        assert sugar["description"] == "Generated description of sugar (poor)."
        assert "refined_sugars" in sugar["analysis"]["failedCriteria"]

    def test_boilerplate_filtered(self, client: TestClient):
        response = client.post(
            "/ingredients/analyze",
            json={"text": "Water, Contains 2% or less of, May contain milk, Salt"},
        )

        assert [i["name"] for i in response.json()["ingredients"]] == ["Water", "Salt"]

    def test_empty_text(self, client: TestClient):
        response = client.post("/ingredients/analyze", json={"text": ""})

        assert response.json() == {"ingredients": [], "healthScore": 0}

    def test_missing_text(self, client: TestClient):
        response = client.post("/ingredients/analyze", json={})
        assert response.status_code == 422

    def test_text_too_long(self, client: TestClient):
        response = client.post("/ingredients/analyze", json={"text": "a" * 10001})
        assert response.status_code == 422

    def test_generation_quota_uses_fallbacks(self, client: TestClient, mock_claude_service):
        mock_claude_service.set_error(QuotaExceededError("AI quota exceeded"), persist=True)

        response = client.post("/ingredients/analyze", json={"text": "Honey, Cane Sugar"})

        assert response.status_code == 200
        descriptions = [i["description"] for i in response.json()["ingredients"]]
        assert all(descriptions)
        assert mock_claude_service.call_count("generate_ingredient_description") == 1


class TestAppEndpoints:
    """Tests for /health and DELETE /cache."""

    def test_health(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_clear_caches(self, client: TestClient):
        client.get("/products/747599409943")
        client.get("/products/search", params={"q": "granola"})
        client.post("/ingredients/analyze", json={"text": "Sugar"})

        response = client.delete("/cache")

        assert response.status_code == 200
        assert response.json() == {
            "cleared": {"products": 1, "searches": 1, "analyses": 1, "descriptions": 1}
        }

        response = client.delete("/cache")
        assert response.json()["cleared"]["products"] == 0
