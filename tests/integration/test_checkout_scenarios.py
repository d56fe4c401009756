"""End-to-end checkout flows: place, pay, settle."""

import json

from protean import current_domain

from storefront.order.order import Order
from storefront.payment.gateway.signature import sign


def _settle(client, order_id, intent_id, secret="payme-test-secret", signature=None):
    body = json.dumps({"orderId": order_id, "intentId": intent_id}).encode()
    return client.post(
        "/payments/payme/webhook",
        content=body,
        headers={"Content-Type": "application/json", "x-signature": signature or sign(body, secret)},
    )


class TestCheckoutScenarios:
    def test_customer_places_order(self, client, make_account, auth_headers, sample_order):
        response = client.post("/orders", json=sample_order, headers=auth_headers(make_account()))

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["paymentStatus"] == "pending"

    def test_create_intent_with_empty_body(self, client, make_account, auth_headers):
        response = client.post("/payments/payme/create", json={}, headers=auth_headers(make_account()))

        assert response.status_code == 400
        assert response.json() == {"message": "orderId and amount required"}

    def test_signed_webhook_marks_order_paid(self, client, make_account, auth_headers, place_order):
        customer = make_account()
        order = place_order(customer)
        intent = client.post(
            "/payments/payme/create",
            json={"orderId": order["id"], "amount": 225.0},
            headers=auth_headers(customer),
        ).json()

        response = _settle(client, order["id"], intent["intentId"])

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        stored = current_domain.repository_for(Order).get(order["id"])
        assert stored.payment_status == "paid"
        assert stored.payment_intent_id == intent["intentId"]
        assert stored.paid_at is not None

    def test_forged_webhook_is_rejected(self, client, make_account, auth_headers, place_order):
        customer = make_account()
        order = place_order(customer)
        intent = client.post(
            "/payments/payme/create",
            json={"orderId": order["id"], "amount": 225.0},
            headers=auth_headers(customer),
        ).json()
        forged = "f" * 64

        response = _settle(client, order["id"], intent["intentId"], signature=forged)

        assert response.status_code == 401
        stored = current_domain.repository_for(Order).get(order["id"])
        assert stored.payment_status == "pending"
        assert stored.paid_at is None
