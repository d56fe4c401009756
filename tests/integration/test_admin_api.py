"""Integration tests for back-office endpoints and role enforcement."""

from protean import current_domain

from storefront.identity.user import User


class TestAdminOrders:
    def test_paginated_orders(self, client, make_account, auth_headers, place_order):
        for _ in range(3):
            place_order(make_account())

        response = client.get("/admin/orders?page=1&limit=2", headers=auth_headers(make_account(role="admin")))
        assert response.status_code == 200
        body = response.json()
        assert len(body["orders"]) == 2
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    def test_assign_courier(self, client, make_account, auth_headers, place_order):
        order = place_order(make_account())
        response = client.put(
            f"/admin/orders/{order['id']}/courier",
            json={"courierId": "c-1", "courierName": "Bekzod", "courierPhone": "+998907654321", "estimatedTime": 20},
            headers=auth_headers(make_account(role="operator")),
        )
        assert response.status_code == 200
        delivery = response.json()["delivery"]
        assert delivery["courierName"] == "Bekzod"
        assert delivery["estimatedTime"] == 20
        assert delivery["address"] == "Amir Temur 1"

    def test_assign_courier_unknown_order(self, client, make_account, auth_headers):
        response = client.put(
            "/admin/orders/missing/courier",
            json={"courierId": "c-1", "courierName": "Bekzod", "courierPhone": "+998907654321"},
            headers=auth_headers(make_account(role="admin")),
        )
        assert response.status_code == 404

    def test_customer_cannot_assign_courier(self, client, make_account, auth_headers, place_order):
        customer = make_account()
        order = place_order(customer)
        response = client.put(
            f"/admin/orders/{order['id']}/courier",
            json={"courierId": "c-1", "courierName": "Bekzod", "courierPhone": "+998907654321"},
            headers=auth_headers(customer),
        )
        assert response.status_code == 403
        assert response.json()["requiredPermission"] == "delivery:assign"


class TestUserAdministration:
    def test_list_users_with_filters(self, client, make_account, auth_headers):
        admin = make_account(role="admin")
        make_account(role="operator")
        make_account()

        response = client.get("/admin/users?role=cashier", headers=auth_headers(admin))
        assert response.status_code == 200
        assert [user["role"] for user in response.json()["users"]] == ["operator"]

    def test_create_user(self, client, make_account, auth_headers):
        response = client.post(
            "/admin/users",
            json={"name": "New Operator", "phone": "+998905550001", "password": "pw123456", "role": "moderator"},
            headers=auth_headers(make_account(role="admin")),
        )
        assert response.status_code == 201
        body = response.json()
        assert body["role"] == "operator"
        assert "password" not in body
        assert "passwordHash" not in body

    def test_operator_cannot_create_admin(self, client, make_account, auth_headers):
        response = client.post(
            "/admin/users",
            json={"name": "Boss", "phone": "+998905550002", "password": "pw123456", "role": "admin"},
            headers=auth_headers(make_account(role="operator")),
        )
        assert response.status_code == 403

    def test_duplicate_phone(self, client, make_account, auth_headers):
        existing = make_account()
        response = client.post(
            "/admin/users",
            json={"name": "Copy", "phone": existing.phone, "password": "pw123456"},
            headers=auth_headers(make_account(role="admin")),
        )
        assert response.status_code == 409

    def test_update_user(self, client, make_account, auth_headers):
        target = make_account(name="Before")
        response = client.put(
            f"/admin/users/{target.id}",
            json={"name": "After"},
            headers=auth_headers(make_account(role="operator")),
        )
        assert response.status_code == 200
        assert response.json()["name"] == "After"

    def test_toggle_status(self, client, make_account, auth_headers):
        target = make_account()
        response = client.patch(
            f"/admin/users/{target.id}/toggle-status", headers=auth_headers(make_account(role="admin"))
        )
        assert response.status_code == 200
        assert response.json() == {"id": str(target.id), "isActive": False}

    def test_change_role(self, client, make_account, auth_headers):
        target = make_account()
        response = client.patch(
            f"/admin/users/{target.id}/role",
            json={"role": "operator"},
            headers=auth_headers(make_account(role="admin")),
        )
        assert response.status_code == 200
        assert response.json()["role"] == "operator"

    def test_operator_cannot_change_role(self, client, make_account, auth_headers):
        target = make_account()
        response = client.patch(
            f"/admin/users/{target.id}/role",
            json={"role": "operator"},
            headers=auth_headers(make_account(role="operator")),
        )
        assert response.status_code == 403


class TestDeleteUser:
    def test_admin_deletes_user(self, client, make_account, auth_headers):
        target = make_account()
        response = client.delete(f"/admin/users/{target.id}", headers=auth_headers(make_account(role="admin")))
        assert response.status_code == 200
        assert current_domain.repository_for(User).find_by_phone(target.phone) is None

    def test_user_role_is_forbidden(self, client, make_account, auth_headers):
        target = make_account()
        response = client.delete(f"/admin/users/{target.id}", headers=auth_headers(make_account()))
        assert response.status_code == 403
        assert response.json() == {
            "message": "Access denied: delete permission required for users",
            "userRole": "user",
            "requiredPermission": "users:delete",
        }

    def test_operator_is_forbidden(self, client, make_account, auth_headers):
        target = make_account()
        response = client.delete(f"/admin/users/{target.id}", headers=auth_headers(make_account(role="operator")))
        assert response.status_code == 403

    def test_self_deletion_is_400_for_every_role(self, client, make_account, auth_headers):
        for role in ("admin", "operator", "user"):
            account = make_account(role=role)
            response = client.delete(f"/admin/users/{account.id}", headers=auth_headers(account))
            assert response.status_code == 400, role
            assert response.json() == {"message": "Cannot delete your own account"}

    def test_deleted_account_token_stops_working(self, client, make_account, auth_headers):
        target = make_account()
        headers = auth_headers(target)
        client.delete(f"/admin/users/{target.id}", headers=auth_headers(make_account(role="admin")))

        assert client.get("/auth/me", headers=headers).status_code == 401


class TestAuditLogEndpoints:
    def test_only_admin_reads_audit_logs(self, client, make_account, auth_headers):
        assert client.get("/admin/audit-logs", headers=auth_headers(make_account(role="operator"))).status_code == 403
        assert client.get("/admin/audit-logs", headers=auth_headers(make_account(role="admin"))).status_code == 200

    def test_list_filter_and_stats(self, client, make_account, auth_headers, place_order, flush_audit):
        admin = make_account(role="admin")
        customer = make_account()
        place_order(customer)
        place_order(customer)
        flush_audit()

        headers = auth_headers(admin)
        logs = client.get(f"/admin/audit-logs?action=order_create&userId={customer.id}", headers=headers).json()
        assert logs["success"] is True
        assert logs["pagination"]["total"] == 2
        assert all(entry["userRole"] == "user" for entry in logs["data"])

        stats = client.get("/admin/audit-logs/stats?days=1", headers=headers).json()["data"]
        assert stats["total"] == 2
        assert stats["byAction"] == {"order_create": 2}

        activity = client.get(f"/admin/users/{customer.id}/activity?limit=1", headers=headers).json()
        assert len(activity["data"]) == 1


class TestDashboardStats:
    def test_staff_sees_totals(self, client, make_account, auth_headers, place_order):
        admin = make_account(role="admin")
        first = place_order(make_account())
        place_order(make_account())
        client.patch(f"/orders/{first['id']}/status", json={"status": "delivered"}, headers=auth_headers(admin))

        response = client.get("/admin/stats", headers=auth_headers(make_account(role="operator")))

        assert response.status_code == 200
        body = response.json()
        assert body["totalUsers"] == 4
        assert body["totalOrders"] == 2
        assert body["totalRevenue"] == 225.0
        assert body["ordersByStatus"] == {"pending": 1, "delivered": 1}
        assert len(body["recentOrders"]) == 2

    def test_recent_orders_are_capped_at_five(self, client, make_account, auth_headers, place_order):
        customer = make_account()
        for _ in range(6):
            place_order(customer)

        body = client.get("/admin/stats", headers=auth_headers(make_account(role="admin"))).json()
        assert body["totalOrders"] == 6
        assert len(body["recentOrders"]) == 5

    def test_customer_is_forbidden(self, client, make_account, auth_headers):
        response = client.get("/admin/stats", headers=auth_headers(make_account()))
        assert response.status_code == 403
        assert response.json()["requiredPermission"] == "analytics:view"
