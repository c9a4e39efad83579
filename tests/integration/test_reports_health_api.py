"""API tests for reports, the health check and the metrics endpoint."""

import pytest


@pytest.fixture
def completed_sale(client, auth_headers, pos_data):
    response = client.post(
        "/sales",
        json={
            "drugId": pos_data.drug_id,
            "storeId": pos_data.store_id,
            "customerId": pos_data.customer_id,
            "quantity": 2,
            "paymentMethod": "mobile_money",
        },
        headers=auth_headers("cashier"),
    )
    assert response.status_code == 201
    return response.get_json()["data"]


def test_health_needs_no_token(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json()["data"]["status"] == "healthy"
    assert response.get_json()["data"]["database"] == "ok"


def test_metrics_exposed(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "app_info" in response.get_data(as_text=True)


def test_unknown_route_uses_envelope(client):
    response = client.get("/nowhere")

    assert response.status_code == 404
    assert response.get_json()["success"] is False
    assert response.get_json()["error"] == "not_found"


class TestReports:
    def test_sales_summary(self, client, auth_headers, completed_sale):
        response = client.get("/reports/sales-summary", headers=auth_headers("manager"))

        data = response.get_json()["data"]
        assert response.status_code == 200
        assert data["totalSales"] == 1
        assert data["totalRevenue"] == "20.00"
        assert data["byPaymentMethod"][0]["paymentMethod"] == "mobile_money"

    def test_sales_summary_bad_date(self, client, auth_headers):
        response = client.get(
            "/reports/sales-summary?startDate=yesterday", headers=auth_headers("manager")
        )

        assert response.status_code == 422

    def test_top_drugs(self, client, auth_headers, pos_data, completed_sale):
        response = client.get(
            f"/reports/top-drugs?storeId={pos_data.store_id}&limit=5",
            headers=auth_headers("pharmacist"),
        )

        rows = response.get_json()["data"]
        assert response.status_code == 200
        assert rows[0]["drugId"] == pos_data.drug_id
        assert rows[0]["quantitySold"] == 2

    def test_reports_are_staff_only(self, client, auth_headers):
        response = client.get("/reports/top-drugs", headers=auth_headers("cashier"))

        assert response.status_code == 403
