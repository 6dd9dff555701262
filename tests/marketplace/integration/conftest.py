import pytest
from fastapi.testclient import TestClient

from marketplace.api import create_app


@pytest.fixture()
def client(marketplace):
    with TestClient(create_app(marketplace, initialize=False)) as client:
        yield client


@pytest.fixture()
def product_id(client):
    """A product registered through the admin endpoint."""
    response = client.post(
        "/products",
        json={
            "name": "Maasai Shuka Blanket",
            "merchant_id": "merchant-001",
            "merchant_name": "Nairobi Textiles",
            "price": 25.0,
            "stock_quantity": 5,
        },
        headers={"X-User-Id": "admin-001", "X-User-Role": "admin"},
    )
    assert response.status_code == 201
    return response.json()["id"]
