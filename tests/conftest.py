"""
Pytest configuration and shared fixtures for the marketplace test suite.
"""

import pytest
from fastapi.testclient import TestClient

from auth import TokenIssuer
from database import Store
from main import Services, create_app

TEST_SECRET = "test-secret"


@pytest.fixture
def store():
    """A fresh store seeded with the demo users."""
    return Store()


@pytest.fixture
def svc(store):
    return Services(store)


@pytest.fixture
def make_product(svc):
    """Factory: list a product for a seller and return it."""
    def _make(seller_id="seller1", name="Widget", price=10.0, stock=5):
        return svc.products.create(seller_id, name=name, price=price, stock_quantity=stock)
    return _make


@pytest.fixture
def complete_order(svc):
    """Walk an order from pending to completed, returning the last transition result."""
    def _complete(order_id, seller_id="seller1"):
        result = None
        for status in ("confirmed", "shipped", "delivered", "completed"):
            result = svc.orders.update_status(order_id, seller_id, status)
        return result
    return _complete


@pytest.fixture
def tokens():
    return TokenIssuer(secret=TEST_SECRET, expire_hours=1)


@pytest.fixture
def client(store, tokens):
    return TestClient(create_app(store, tokens))


@pytest.fixture
def auth(client):
    """Factory: log a demo user in and return the Authorization header."""
    def _auth(user_id):
        resp = client.post("/auth/login", json={"user_id": user_id, "password": "password123"})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['token']}"}
    return _auth
