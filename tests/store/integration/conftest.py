import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from store.api import routers
from store.api.errors import register_store_exception_handlers


@pytest.fixture()
def client():
    app = FastAPI()
    for router in routers:
        app.include_router(router)
    register_store_exception_handlers(app)
    return TestClient(app)


@pytest.fixture()
def create_item(client):
    """Helper: POST /items and return the response body."""

    def _create_item(name="Whey Protein 2kg", quantity=10, low_stock_threshold=3, price=49.99, **extra):
        response = client.post(
            "/items",
            json={
                "name": name,
                "quantity": quantity,
                "low_stock_threshold": low_stock_threshold,
                "price": price,
                **extra,
            },
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create_item
