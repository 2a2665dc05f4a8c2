"""
Test HTTP endpoints
"""

import pytest


STEEL = {
    "record_id": "steel-po-17",
    "quantity": 1000,
    "unit": "kg",
    "category_id": "purchased_goods_services",
    "subcategory_id": "steel",
    "scope": "scope3",
}


class TestHealthAndMetrics:
    """Test service endpoints"""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers

    def test_metrics(self, client):
        client.post("/v1/emissions/calculate", json={"records": [STEEL]})
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "emissions_calculations_total" in response.text


class TestFactorEndpoints:
    """Test factor browsing"""

    def test_list_categories(self, client):
        response = client.get("/v1/emissions/factors")
        assert response.status_code == 200
        assert len(response.json()) == 5

    def test_filter_categories(self, client):
        response = client.get(
            "/v1/emissions/factors", params={"scope": "scope3", "direction": "downstream"}
        )
        assert [c["id"] for c in response.json()] == ["investments"]

    def test_get_category(self, client):
        response = client.get("/v1/emissions/factors/purchased_goods_services")
        assert response.status_code == 200
        data = response.json()
        steel = next(s for s in data["subcategories"] if s["id"] == "steel")
        assert steel["emission_factors"]["actual"]["value"] == 1.46

    def test_unknown_category(self, client):
        response = client.get("/v1/emissions/factors/teleportation")
        assert response.status_code == 404
        assert response.json()["detail"]["error_code"] == "FACTOR_NOT_FOUND"


class TestCalculationEndpoints:
    """Test calculation and report endpoints"""

    def test_calculate(self, client):
        response = client.post("/v1/emissions/calculate", json={"records": [STEEL]})

        assert response.status_code == 200
        data = response.json()
        assert data["results"][0]["emissions_kg"] == pytest.approx(1460.0)
        assert data["results"][0]["method_used"] == "actual"
        assert data["failures"] == []

    def test_calculate_with_failures(self, client):
        bad = dict(STEEL, subcategory_id="glass", method_override="monetary", unit="EUR")
        response = client.post(
            "/v1/emissions/calculate",
            json={"records": [STEEL, bad], "processing_mode": "parallel"},
        )

        assert response.status_code == 200
        failures = response.json()["failures"]
        assert failures[0]["index"] == 1
        assert failures[0]["error_code"] == "METHOD_UNAVAILABLE"

    def test_invalid_record(self, client):
        response = client.post(
            "/v1/emissions/calculate", json={"records": [dict(STEEL, quantity=-3)]}
        )
        assert response.status_code == 422

    def test_empty_batch(self, client):
        response = client.post("/v1/emissions/calculate", json={"records": []})
        assert response.status_code == 422

    def test_invalid_processing_mode(self, client):
        response = client.post(
            "/v1/emissions/calculate",
            json={"records": [STEEL], "processing_mode": "distributed"},
        )
        assert response.status_code == 422

    def test_report(self, client):
        response = client.post(
            "/v1/emissions/report",
            json={"records": [STEEL], "verification_level": "verified"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["grand_total"]["total"] == pytest.approx(1460.0)
        # steel u = 73, U = 146 -> 10 % relative expanded uncertainty
        assert data["relative_uncertainty_percent"] == pytest.approx(10.0)
        assert data["compliance_score"] >= 90.0
        assert data["regulatory_risk_level"] == "low"
        assert data["audit_trail"][0]["stage"] == "registry"
