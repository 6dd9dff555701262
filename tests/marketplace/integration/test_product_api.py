"""Integration tests for product registration, health and error mapping."""

import pytest
from fastapi.testclient import TestClient

from marketplace.api import create_app

USER_HEADERS = {"X-User-Id": "user-001"}
ADMIN_HEADERS = {"X-User-Id": "admin-001", "X-User-Role": "admin"}


class TestProducts:
    def test_register_product(self, client):
        response = client.post(
            "/products",
            json={"name": "Sisal Basket", "merchant_id": "merchant-002", "price": 40, "stock_quantity": 3},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["available"] == 3
        assert data["sold_quantity"] == 0
        assert data["price"] == 40.0

    def test_get_product(self, client, product_id):
        response = client.get(f"/products/{product_id}")
        assert response.status_code == 200
        assert response.json()["name"] == "Maasai Shuka Blanket"

    def test_unknown_product(self, client):
        response = client.get("/products/missing")
        assert response.status_code == 404
        assert "error" in response.json()

    def test_registration_requires_admin(self, client):
        response = client.post(
            "/products",
            json={"name": "Sisal Basket", "merchant_id": "merchant-002", "price": 40},
            headers=USER_HEADERS,
        )
        assert response.status_code == 403

    def test_invalid_payload(self, client):
        response = client.post(
            "/products",
            json={"name": "", "merchant_id": "merchant-002", "price": -1},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 400
        assert "price" in response.json()["error"]


class TestApplication:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "domain": "marketplace", "environment": "test"}

    def test_missing_identity(self, client):
        response = client.get("/cart")
        assert response.status_code == 401
        assert response.json() == {"detail": "Not authorized to access this route"}

    def test_unexpected_error_is_hidden(self, marketplace, monkeypatch):
        def broken(user_id):
            raise RuntimeError("database on fire")

        monkeypatch.setattr(marketplace.lifecycle, "list_orders", broken)

        with TestClient(create_app(marketplace, initialize=False), raise_server_exceptions=False) as client:
            response = client.get("/orders", headers=USER_HEADERS)

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    @pytest.mark.parametrize("path", ["/flash-sales/admin/all", "/flash-sales/admin/analytics"])
    def test_admin_routes_require_role(self, client, path):
        assert client.get(path, headers=USER_HEADERS).status_code == 403
