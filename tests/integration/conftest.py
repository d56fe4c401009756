"""Fixtures for HTTP tests against the full application.

The app is built without re-initializing the domain, which the session
``storefront_bed`` fixture has already done. Entering the TestClient runs
the lifespan, so the audit recorder is live for every request.
"""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def client():
    from storefront.api.app import create_app

    with TestClient(create_app(init_domain=False)) as client:
        yield client


@pytest.fixture
def flush_audit(client):
    """Block until every submitted audit record has been written."""

    def _flush():
        client.portal.call(client.app.state.audit_recorder.join)

    return _flush


@pytest.fixture
def sample_order():
    return {
        "items": [
            {"productId": "prod-001", "title": "Sneakers", "slug": "sneakers", "price": 100.0, "qty": 2},
            {"productId": "prod-002", "title": "Socks", "price": 10.0, "qty": 1, "color": "black"},
        ],
        "totals": {"subtotal": 210.0, "shipping": 15.0, "tax": 0.0, "total": 225.0},
        "address": {
            "fullName": "Aziz Karimov",
            "phone": "+998901234567",
            "city": "Tashkent",
            "street": "Amir Temur 1",
        },
        "delivery": {"address": "Amir Temur 1", "coordinates": {"lat": 41.31, "lng": 69.28}, "estimatedTime": 45},
        "paymentMethod": "payme",
    }


@pytest.fixture
def place_order(client, sample_order, auth_headers):
    """Factory: place ``sample_order`` as ``user`` through the API and return the response body."""

    def _place(user):
        response = client.post("/orders", json=sample_order, headers=auth_headers(user))
        assert response.status_code == 201, response.text
        return response.json()

    return _place
