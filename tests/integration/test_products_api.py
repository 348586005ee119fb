"""
Integration tests for the product endpoints.

Routers run against the product_service fixture (in-memory Open Food Facts
client, keyword classifier, mock description generator).
"""

import json

import pytest
from fastapi.testclient import TestClient

from app.api import products as products_api


BARCODE = "3017620422003"
RECORD = {
    "product_name": "Spinach Dip",
    "brands": "Acme",
    "ingredients_text": "Organic Spinach, Sugar, Natural Flavor, Water",
    "allergens_tags": ["en:milk"],
}


def _parse_sse(text: str) -> list[tuple[str, dict]]:
    """Split an SSE body into (event, data) pairs."""
    events = []
    for block in text.replace("\r\n", "\n").split("\n\n"):
        event = None
        data = None
        for line in block.splitlines():
            if line.startswith("event:"):
                event = line[len("event:"):].strip()
            elif line.startswith("data:"):
                data = json.loads(line[len("data:"):].strip())
        if event:
            events.append((event, data))
    return events


# =============================================================================
# GET /products/{barcode}
# =============================================================================


class TestLookupEndpoint:
    """Tests for GET /products/{barcode}."""

    def test_curated_product(self, client: TestClient):
        response = client.get("/products/747599409943")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "747599409943"
        assert data["healthScore"] == 35
        assert data["productType"] == "chocolate"
        assert data["loading"] == {"ingredients": False}
        assert len(data["ingredients"]) == 10

    def test_unknown_barcode(self, client: TestClient):
        response = client.get("/products/9999999999999")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Product Not Found"
        assert data["healthScore"] == 0
        assert [i["quality"] for i in data["ingredients"]] == ["unknown"]

    def test_invalid_barcode(self, client: TestClient):
        response = client.get("/products/abc")

        assert response.status_code == 400
        assert "Invalid barcode" in response.json()["detail"]

    def test_skeleton_response(self, client: TestClient, mock_product_client):
        mock_product_client.set_product(BARCODE, RECORD)

        response = client.get(f"/products/{BARCODE}")

        data = response.json()
        assert data["name"] == "Spinach Dip"
        assert data["allergens"] == [{"name": "milk", "severity": "medium"}]
        assert data["loading"]["ingredients"] is True


# =============================================================================
# GET /products/{barcode}/updates
# =============================================================================


class TestUpdatesEndpoint:
    """Tests for GET /products/{barcode}/updates."""

    def test_no_updates_before_lookup(self, client: TestClient, mock_product_client):
        response = client.get(f"/products/{BARCODE}/updates")

        assert response.json() == {"hasUpdates": False}
        assert mock_product_client.call_count("get_product") == 0

    def test_completed_snapshot(self, client: TestClient, mock_product_client, product_service):
        mock_product_client.set_product(BARCODE, RECORD)
        client.get(f"/products/{BARCODE}")
        client.portal.call(product_service.wait_for_product, BARCODE, 5)

        response = client.get(f"/products/{BARCODE}/updates")

        data = response.json()
        assert data["hasUpdates"] is True
        product = data["product"]
        assert product["loading"]["ingredients"] is False
        assert [i["name"] for i in product["ingredients"]] == [
            "Organic Spinach",
            "Sugar",
            "Natural Flavor",
            "Water",
        ]
        assert product["healthScore"] == 50
        spinach = product["ingredients"][0]["analysis"]
        assert spinach["criteriaResults"]["organic"] is True
        assert "organic" in spinach["passedCriteria"]


# =============================================================================
# GET /products/{barcode}/stream
# =============================================================================


class TestStreamEndpoint:
    """Tests for the SSE product stream."""

    def test_stream_completed_product(self, client: TestClient):
        response = client.get(
            "/products/747599409943/stream", headers={"Accept": "text/event-stream"}
        )

        assert response.status_code == 200
        events = _parse_sse(response.text)
        assert [name for name, _ in events] == ["product", "complete"]
        assert events[0][1]["healthScore"] == 35
        assert events[1][1] == {"barcode": "747599409943", "healthScore": 35}

    def test_stream_until_complete(self, client: TestClient, mock_product_client, monkeypatch):
        monkeypatch.setattr(products_api, "STREAM_POLL_INTERVAL", 0.01)
        mock_product_client.set_product(BARCODE, RECORD)

        response = client.get(f"/products/{BARCODE}/stream")

        events = _parse_sse(response.text)
        names = [name for name, _ in events]
        assert names[0] == "product"
        assert names[-1] == "complete"
        assert events[0][1]["loading"]["ingredients"] is True
        final = [data for name, data in events if name == "product"][-1]
        assert final["loading"]["ingredients"] is False
        assert events[-1][1]["healthScore"] == final["healthScore"]

    def test_stream_timeout(self, client: TestClient, mock_product_client, monkeypatch):
        monkeypatch.setattr(products_api, "STREAM_TIMEOUT", 0)
        mock_product_client.set_product(BARCODE, RECORD)

        response = client.get(f"/products/{BARCODE}/stream")

        events = _parse_sse(response.text)
        assert [name for name, _ in events] == ["product", "error"]
        assert "Timed out" in events[1][1]["message"]

    def test_stream_invalid_barcode(self, client: TestClient):
        response = client.get("/products/abc/stream")
        assert response.status_code == 400


# =============================================================================
# GET /products/search
# =============================================================================


class TestSearchEndpoint:
    """Tests for GET /products/search."""

    def test_demo_search(self, client: TestClient):
        response = client.get("/products/search", params={"q": "cookie"})

        assert response.status_code == 200
        results = response.json()
        assert [p["id"] for p in results] == ["123456789012"]
        assert results[0]["healthScore"] == 45

    def test_upstream_search(self, client: TestClient, mock_product_client):
        mock_product_client.set_search_results(
            [{"code": "111", "product_name": "Oat Drink", "nutrition_grades": "b"}]
        )

        results = client.get("/products/search", params={"q": "oat drink"}).json()

        assert results[0]["name"] == "Oat Drink"
        assert results[0]["healthScore"] == 70

    def test_search_failure_returns_empty_list(self, client: TestClient, mock_product_client):
        mock_product_client.set_error(RuntimeError("upstream down"))

        response = client.get("/products/search", params={"q": "oat drink"})

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.parametrize("params", [{}, {"q": ""}])
    def test_empty_query(self, client: TestClient, params):
        assert client.get("/products/search", params=params).json() == []
