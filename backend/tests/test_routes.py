"""
HTTP API tests.

Requests go through the Flask test client with a bearer token; state is
read back through the database afterwards.
"""

from backoffice.models import Item, Order, Sale, SaleItem, Tab


# =============================================================================
# AUTHENTICATION AND PERMISSIONS
# =============================================================================


class TestAccessControl:

    def test_requires_session(self, client, db_session):
        assert client.get("/api/sales/").status_code == 401
        assert client.post("/api/sales/void-item", json={"item_id": 1}).status_code == 401
        assert client.post("/api/orders/void", json={"order_id": 1}).status_code == 401

    def test_bad_token(self, client, db_session):
        resp = client.get("/api/sales/", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Not authenticated"

    def test_cookie_session(self, client, db_session, cashier):
        from backoffice.services import session_service

        _, token = session_service.create_session(cashier.id)
        client.set_cookie("session_id", token)
        assert client.get("/api/sales/").status_code == 200

    def test_staff_cannot_void(self, client, db_session, cashier_headers, item, make_sale, fetch):
        sale = make_sale([(item, 2, 500)])

        resp = client.post("/api/sales/void-sale", json={"sale_id": sale.id}, headers=cashier_headers)

        assert resp.status_code == 403
        assert resp.get_json()["required_level"] == 800
        assert fetch(Sale, sale.id).voided is False

    def test_staff_cannot_void_orders(self, client, db_session, cashier_headers, order_with_lines):
        resp = client.post("/api/orders/void", json={"order_id": order_with_lines.id}, headers=cashier_headers)
        assert resp.status_code == 403


# =============================================================================
# SALES
# =============================================================================


class TestSalesRoutes:

    def test_sell_then_void_one_unit(self, client, db_session, cashier_headers, manager_headers, item, fetch):
        resp = client.post("/api/sales/", json={
            "cart": [{"item_id": item.id, "quantity": 2, "price_cents": 500}],
            "payment_method": "cash",
            "original_total_cents": 1000,
            "final_total_cents": 1000,
        }, headers=cashier_headers)

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["success"] is True
        sale_id = body["sale_id"]
        assert body["sale"]["staff_name"] == "Casey Cashier"
        assert fetch(Item, item.id).stock == 8

        detail = client.get(f"/api/sales/{sale_id}", headers=cashier_headers).get_json()
        line_id = detail["items"][0]["id"]

        resp = client.post("/api/sales/void-item", json={"item_id": line_id}, headers=manager_headers)

        assert resp.status_code == 200
        assert resp.get_json() == {"success": True}
        assert fetch(Item, item.id).stock == 9
        line = fetch(SaleItem, line_id)
        assert (line.quantity, line.subtotal_cents, line.voided) == (1, 500, True)
        assert fetch(Sale, sale_id).final_total_cents == 500

        resp = client.post("/api/sales/void-item", json={"item_id": line_id}, headers=manager_headers)
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "Sale item already voided"

    def test_void_sale_refunds_tab(self, client, db_session, manager_headers, item, tab, make_sale, fetch):
        sale = make_sale([(item, 9, 500)], payment_method=f"tab{tab.id}")

        resp = client.post(
            "/api/sales/void-sale", json={"sale_id": sale.id, "reason": "Wrong tab"}, headers=manager_headers,
        )

        assert resp.status_code == 200
        assert fetch(Tab, tab.id).amount_cents == 10000
        assert fetch(Sale, sale.id).void_reason == "Wrong tab"

        again = client.post("/api/sales/void-sale", json={"sale_id": sale.id}, headers=manager_headers)
        assert again.status_code == 409

    def test_validation_errors(self, client, db_session, cashier_headers, manager_headers, item):
        resp = client.post("/api/sales/", json={"cart": []}, headers=cashier_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Cart is empty"

        resp = client.post("/api/sales/", json={
            "cart": [{"item_id": item.id, "quantity": 1, "price_cents": 500}],
            "original_total_cents": "5.00",
            "final_total_cents": 500,
        }, headers=cashier_headers)
        assert resp.status_code == 400

        resp = client.post("/api/sales/void-item", json={}, headers=manager_headers)
        assert resp.status_code == 400

    def test_not_found(self, client, db_session, manager_headers):
        assert client.post("/api/sales/void-item", json={"item_id": 999999}, headers=manager_headers).status_code == 404
        assert client.post("/api/sales/void-sale", json={"sale_id": 999999}, headers=manager_headers).status_code == 404
        assert client.get("/api/sales/999999", headers=manager_headers).status_code == 404

    def test_insufficient_stock(self, client, db_session, cashier_headers, item, fetch):
        resp = client.post("/api/sales/", json={
            "cart": [{"item_id": item.id, "quantity": 11, "price_cents": 500}],
            "original_total_cents": 5500,
            "final_total_cents": 5500,
        }, headers=cashier_headers)

        assert resp.status_code == 409
        assert resp.get_json()["details"]["on_hand"] == 10
        assert fetch(Item, item.id).stock == 10

    def test_list_sales(self, client, db_session, cashier_headers, item, make_sale):
        make_sale([(item, 1, 500)])
        make_sale([(item, 1, 500)])

        resp = client.get("/api/sales/?limit=1", headers=cashier_headers)

        assert resp.status_code == 200
        assert len(resp.get_json()["sales"]) == 1


# =============================================================================
# ORDERS
# =============================================================================


class TestOrderRoutes:

    def test_void_order(self, client, db_session, manager_headers, order_with_lines, fetch):
        resp = client.post(
            "/api/orders/void",
            json={"order_id": order_with_lines.id, "reason": "customer left"},
            headers=manager_headers,
        )

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["success"] is True
        assert body["order"]["status"] == "void"
        assert fetch(Order, order_with_lines.id).total_cents == 0

        again = client.post("/api/orders/void", json={"order_id": order_with_lines.id}, headers=manager_headers)
        assert again.status_code == 409

    def test_void_line(self, client, db_session, manager_headers, order_with_lines):
        lines = client.get(f"/api/orders/{order_with_lines.id}", headers=manager_headers).get_json()["lines"]

        resp = client.post(
            "/api/orders/void-line",
            json={"order_id": order_with_lines.id, "line_id": lines[2]["id"]},
            headers=manager_headers,
        )

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["order_voided"] is False
        assert body["order"]["total_cents"] == 3000

    def test_create_and_list(self, client, db_session, cashier_headers, manager_headers):
        resp = client.post("/api/orders/", json={
            "lines": [{"name": "Oil change", "quantity": 1, "unit_price_cents": 4500}],
            "subtotal_cents": 4500,
            "total_cents": 4500,
        }, headers=cashier_headers)
        assert resp.status_code == 201
        order_id = resp.get_json()["order_id"]

        orders = client.get("/api/orders/", headers=manager_headers).get_json()["orders"]
        assert [o["id"] for o in orders] == [order_id]

    def test_create_requires_lines(self, client, db_session, cashier_headers):
        resp = client.post("/api/orders/", json={"subtotal_cents": 0, "total_cents": 0}, headers=cashier_headers)
        assert resp.status_code == 400


# =============================================================================
# LEGACY PAYLOADS
# =============================================================================


class TestLegacyPayload:
    """Older POS clients send prices and totals in currency units."""

    def test_sell_then_void_one_unit(self, client, db_session, cashier_headers, manager_headers, item, fetch):
        resp = client.post("/api/sales/", json={
            "cart": [{"item_id": item.id, "quantity": 2, "price": 5}],
            "payment_method": "cash",
            "original_total": 10,
            "final_total": 10,
        }, headers=cashier_headers)

        assert resp.status_code == 201
        sale = resp.get_json()["sale"]
        assert (sale["original_total_cents"], sale["final_total_cents"]) == (1000, 1000)
        assert fetch(Item, item.id).stock == 8

        line_id = client.get(f"/api/sales/{sale['id']}", headers=cashier_headers).get_json()["items"][0]["id"]
        assert fetch(SaleItem, line_id).price_each_cents == 500

        resp = client.post("/api/sales/void-item", json={"item_id": line_id}, headers=manager_headers)

        assert resp.status_code == 200
        assert fetch(Item, item.id).stock == 9
        line = fetch(SaleItem, line_id)
        assert (line.quantity, line.subtotal_cents) == (1, 500)
        assert fetch(Sale, sale["id"]).final_total_cents == 500

    def test_decimal_amounts(self, client, db_session, cashier_headers, item):
        resp = client.post("/api/sales/", json={
            "cart": [{"item_id": item.id, "quantity": 1, "price": "4.99"}],
            "original_total": "4.99",
            "final_total": 4.5,
        }, headers=cashier_headers)

        assert resp.status_code == 201
        sale = resp.get_json()["sale"]
        assert (sale["original_total_cents"], sale["final_total_cents"]) == (499, 450)

    def test_sub_cent_amount_rejected(self, client, db_session, cashier_headers, item):
        resp = client.post("/api/sales/", json={
            "cart": [{"item_id": item.id, "quantity": 1, "price": "4.999"}],
            "original_total": 5,
            "final_total": 5,
        }, headers=cashier_headers)

        assert resp.status_code == 400
        assert "cart[0].price" in resp.get_json()["error"]


# =============================================================================
# SESSION
# =============================================================================


class TestSessionRoutes:

    def test_whoami(self, client, db_session, manager_headers):
        resp = client.get("/api/auth/session", headers=manager_headers)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["staff"]["username"] == "manager"
        assert body["permissions_level"] == 800

    def test_logout_revokes_token(self, client, db_session, cashier_headers):
        resp = client.post("/api/auth/logout", headers=cashier_headers)

        assert resp.status_code == 200
        assert resp.get_json() == {"success": True}
        assert client.get("/api/sales/", headers=cashier_headers).status_code == 401
        assert client.post("/api/auth/logout", headers=cashier_headers).status_code == 401


# =============================================================================
# TABS AND HEALTH
# =============================================================================


class TestMiscRoutes:

    def test_tabs(self, client, db_session, cashier_headers, tab):
        resp = client.get("/api/tabs/?active=true", headers=cashier_headers)
        assert resp.status_code == 200
        assert [t["id"] for t in resp.get_json()["tabs"]] == [tab.id]

        assert client.get(f"/api/tabs/{tab.id}", headers=cashier_headers).get_json()["tab"]["amount_cents"] == 10000
        assert client.get("/api/tabs/999999", headers=cashier_headers).status_code == 404

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "healthy"
