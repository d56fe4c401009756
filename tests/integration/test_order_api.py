"""Integration tests for order endpoints via TestClient."""

import pytest
from protean import current_domain

from storefront.order import status as status_module
from storefront.order.order import Order


class TestPlaceOrderEndpoint:
    def test_place_order(self, client, make_account, auth_headers, sample_order):
        customer = make_account()
        response = client.post("/orders", json=sample_order, headers=auth_headers(customer))

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["paymentStatus"] == "pending"
        assert body["userId"] == str(customer.id)
        assert body["items"][0]["productId"] == "prod-001"
        assert body["delivery"]["coordinates"] == {"lat": 41.31, "lng": 69.28}

        order = current_domain.repository_for(Order).get(body["id"])
        assert order.totals.total == 225.0

    def test_requires_token(self, client, sample_order):
        response = client.post("/orders", json=sample_order)
        assert response.status_code == 401
        assert response.json() == {"message": "Access token required"}

    def test_invalid_token(self, client, sample_order):
        response = client.post("/orders", json=sample_order, headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401

    @pytest.mark.parametrize("role", ["admin", "operator", "user"])
    def test_every_role_places_orders(self, client, make_account, auth_headers, sample_order, role):
        response = client.post("/orders", json=sample_order, headers=auth_headers(make_account(role=role)))
        assert response.status_code == 201

    def test_placement_is_gated_by_the_permission_table(
        self, client, make_account, auth_headers, sample_order, monkeypatch
    ):
        monkeypatch.setattr(
            "storefront.access.dependencies.is_allowed",
            lambda role, resource, action: (resource, action) != ("orders", "create"),
        )

        response = client.post("/orders", json=sample_order, headers=auth_headers(make_account()))

        assert response.status_code == 403
        assert response.json()["requiredPermission"] == "orders:create"
        assert current_domain.repository_for(Order).search(page=1, limit=10)[1] == 0

    def test_missing_items(self, client, make_account, auth_headers, sample_order):
        sample_order["items"] = []
        response = client.post("/orders", json=sample_order, headers=auth_headers(make_account()))
        assert response.status_code == 400
        assert response.json()["message"] == "items, totals, address required"

    def test_zero_quantity(self, client, make_account, auth_headers, sample_order):
        sample_order["items"][0]["qty"] = 0
        response = client.post("/orders", json=sample_order, headers=auth_headers(make_account()))
        assert response.status_code == 400

    def test_inconsistent_totals(self, client, make_account, auth_headers, sample_order):
        sample_order["totals"]["total"] = 1.0
        response = client.post("/orders", json=sample_order, headers=auth_headers(make_account()))
        assert response.status_code == 400
        assert current_domain.repository_for(Order)._dao.query.all().total == 0


class TestListOrders:
    def test_my_orders(self, client, make_account, auth_headers, place_order):
        customer, other = make_account(), make_account()
        mine = place_order(customer)
        place_order(other)

        response = client.get("/orders/my", headers=auth_headers(customer))
        assert response.status_code == 200
        assert [order["id"] for order in response.json()["orders"]] == [mine["id"]]

    def test_staff_lists_all_orders(self, client, make_account, auth_headers, place_order):
        place_order(make_account())
        place_order(make_account())

        response = client.get("/orders", headers=auth_headers(make_account(role="operator")))
        assert response.status_code == 200
        assert len(response.json()["orders"]) == 2

    def test_customer_cannot_list_all_orders(self, client, make_account, auth_headers):
        response = client.get("/orders", headers=auth_headers(make_account()))
        assert response.status_code == 403


class TestChangeStatusEndpoint:
    def test_operator_confirms_order(self, client, make_account, auth_headers, place_order):
        order = place_order(make_account())
        response = client.patch(
            f"/orders/{order['id']}/status",
            json={"status": "confirmed"},
            headers=auth_headers(make_account(role="operator")),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "confirmed"
        assert [change["status"] for change in body["statusChanges"]] == ["pending", "confirmed"]

    def test_status_outside_enum(self, client, make_account, auth_headers, place_order):
        order = place_order(make_account())
        response = client.patch(
            f"/orders/{order['id']}/status",
            json={"status": "shipped"},
            headers=auth_headers(make_account(role="admin")),
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid status"
        assert current_domain.repository_for(Order).get(order["id"]).status == "pending"

    def test_empty_status(self, client, make_account, auth_headers, place_order):
        order = place_order(make_account())
        response = client.patch(
            f"/orders/{order['id']}/status", json={}, headers=auth_headers(make_account(role="admin"))
        )
        assert response.status_code == 400

    def test_backward_transition(self, client, make_account, auth_headers, place_order):
        order = place_order(make_account())
        headers = auth_headers(make_account(role="admin"))
        client.patch(f"/orders/{order['id']}/status", json={"status": "preparing"}, headers=headers)

        response = client.patch(f"/orders/{order['id']}/status", json={"status": "confirmed"}, headers=headers)
        assert response.status_code == 400
        assert current_domain.repository_for(Order).get(order["id"]).status == "preparing"

    def test_unknown_order(self, client, make_account, auth_headers):
        response = client.patch(
            "/orders/missing/status", json={"status": "confirmed"}, headers=auth_headers(make_account(role="admin"))
        )
        assert response.status_code == 404

    def test_customer_cannot_change_status(self, client, make_account, auth_headers, place_order):
        customer = make_account()
        order = place_order(customer)
        response = client.patch(
            f"/orders/{order['id']}/status", json={"status": "cancelled"}, headers=auth_headers(customer)
        )
        assert response.status_code == 403
        assert response.json() == {
            "message": "Access denied: update permission required for orders",
            "userRole": "user",
            "requiredPermission": "orders:update",
        }


class TestConcurrentUpdates:
    def test_stale_write_is_a_conflict(self, client, make_account, auth_headers, place_order, monkeypatch):
        order = place_order(make_account())
        staff = auth_headers(make_account(role="operator"))
        client.patch(f"/orders/{order['id']}/status", json={"status": "confirmed"}, headers=staff)

        real_load = status_module.load_order

        def _one_version_behind(order_id):
            loaded = real_load(order_id)
            loaded._version -= 1
            return loaded

        monkeypatch.setattr(status_module, "load_order", _one_version_behind)
        response = client.patch(f"/orders/{order['id']}/status", json={"status": "preparing"}, headers=staff)

        assert response.status_code == 409
        assert response.json() == {"message": "Record was modified concurrently, please retry"}
        assert current_domain.repository_for(Order).get(order["id"]).status == "confirmed"
