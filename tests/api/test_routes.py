"""
Integration Tests: HTTP API

Full cart -> order flow through FastAPI with SQLite, fakeredis and a mocked
event publisher.
"""

from decimal import Decimal

import pytest


PIZZA = {
    "menu_item_id": "margherita",
    "name": "Pizza Margherita",
    "price": "7.99",
    "quantity": 3,
    "restaurant_id": "napoli",
}


@pytest.fixture
def cart_id(client):
    resp = client.post("/carts/", json={"customer_id": "customer-1"})
    assert resp.status_code == 201
    return resp.json()["cart_id"]


@pytest.fixture
def filled_cart_id(client, cart_id):
    assert client.post(f"/carts/{cart_id}/items", json=PIZZA).status_code == 200
    return cart_id


def place(client, cart_id, key=None, customer_id="customer-1", **extra):
    headers = {"Idempotency-Key": key} if key else {}
    body = {"cart_id": cart_id, "customer_id": customer_id, "delivery_address": "1 Main St", **extra}
    return client.post("/orders/", json=body, headers=headers)


class TestHealth:

    def test_health(self, client):
        body = client.get("/health").json()

        assert body["database"] == "ok"
        assert body["cache"] == "ok"


class TestCartRoutes:

    def test_create_without_body(self, client):
        resp = client.post("/carts/")

        assert resp.status_code == 201
        assert client.get(f"/carts/{resp.json()['cart_id']}").json()["customer_id"] is None

    def test_add_item_returns_priced_cart(self, client, cart_id):
        resp = client.post(f"/carts/{cart_id}/items", json=PIZZA)

        assert resp.status_code == 200
        body = resp.json()
        assert body["restaurant_id"] == "napoli"
        assert Decimal(body["subtotal"]) == Decimal("23.97")
        assert Decimal(body["total"]) == Decimal("28.88")

    def test_get_by_customer(self, client, filled_cart_id):
        resp = client.get("/carts/by-customer/customer-1")

        assert resp.status_code == 200
        assert resp.json()["id"] == filled_cart_id

    def test_update_and_remove_item(self, client, filled_cart_id):
        item_id = client.get(f"/carts/{filled_cart_id}").json()["items"][0]["id"]

        resp = client.put(f"/carts/{filled_cart_id}/items/{item_id}", json={"quantity": 1})
        assert resp.json()["items"][0]["quantity"] == 1

        resp = client.delete(f"/carts/{filled_cart_id}/items/{item_id}")
        assert resp.json()["items"] == []

    def test_clear(self, client, filled_cart_id):
        body = client.delete(f"/carts/{filled_cart_id}").json()

        assert body["items"] == []
        assert body["restaurant_id"] is None

    def test_unknown_cart_is_404(self, client):
        assert client.get("/carts/missing").status_code == 404
        assert client.post("/carts/missing/items", json=PIZZA).status_code == 404

    def test_unknown_item_is_404(self, client, filled_cart_id):
        assert client.delete(f"/carts/{filled_cart_id}/items/missing").status_code == 404

    def test_other_restaurant_is_409(self, client, filled_cart_id):
        thai = {**PIZZA, "menu_item_id": "pad-thai", "restaurant_id": "bangkok"}

        assert client.post(f"/carts/{filled_cart_id}/items", json=thai).status_code == 409
        resp = client.post(f"/carts/{filled_cart_id}/items", json={**thai, "replace": True})
        assert resp.status_code == 200
        assert resp.json()["restaurant_id"] == "bangkok"

    def test_unknown_restaurant_on_bound_cart_is_422(self, client, filled_cart_id):
        thai = {key: value for key, value in PIZZA.items() if key != "restaurant_id"}
        thai["menu_item_id"] = "pad-thai"

        assert client.post(f"/carts/{filled_cart_id}/items", json=thai).status_code == 422
        items = client.get(f"/carts/{filled_cart_id}").json()["items"]
        assert [i["menu_item_id"] for i in items] == ["margherita"]

    def test_invalid_quantity_is_422(self, client, cart_id):
        assert client.post(f"/carts/{cart_id}/items", json={**PIZZA, "quantity": 0}).status_code == 422


class TestOrderRoutes:

    def test_place_and_get_order(self, client, publisher, filled_cart_id):
        resp = place(client, filled_cart_id, key="key-1")

        assert resp.status_code == 201
        order_id = resp.json()["order_id"]

        order = client.get(f"/orders/{order_id}").json()
        assert order["customer_id"] == "customer-1"
        assert Decimal(order["total"]) == Decimal("28.88")
        assert order["status"] == "Pending"
        publisher.publish.assert_called_once()

    def test_header_key_makes_retries_idempotent(self, client, publisher, filled_cart_id):
        first = place(client, filled_cart_id, key="key-1").json()["order_id"]
        second = place(client, filled_cart_id, key="key-1").json()["order_id"]

        assert first == second
        assert len(client.get("/orders/", params={"customer_id": "customer-1"}).json()) == 1
        assert publisher.publish.call_count == 1

    def test_body_key_is_used_without_header(self, client, filled_cart_id):
        first = place(client, filled_cart_id, idempotency_key="body-key").json()["order_id"]
        second = place(client, filled_cart_id, idempotency_key="body-key").json()["order_id"]

        assert first == second

    def test_retry_without_key_hits_consumed_cart(self, client, filled_cart_id):
        assert place(client, filled_cart_id).status_code == 201
        assert place(client, filled_cart_id).status_code == 409

    def test_ordered_cart_is_read_only(self, client, filled_cart_id):
        place(client, filled_cart_id, key="key-1")

        assert client.post(f"/carts/{filled_cart_id}/items", json=PIZZA).status_code == 409

    def test_empty_cart_is_422(self, client, cart_id):
        assert place(client, cart_id, key="key-1").status_code == 422

    def test_foreign_cart_is_403(self, client, filled_cart_id):
        assert place(client, filled_cart_id, key="key-1", customer_id="customer-2").status_code == 403

    def test_key_reused_by_another_customer_is_403(self, client, filled_cart_id):
        place(client, filled_cart_id, key="key-1")
        other = client.post("/carts/", json={"customer_id": "customer-2"}).json()["cart_id"]
        client.post(f"/carts/{other}/items", json=PIZZA)

        assert place(client, other, key="key-1", customer_id="customer-2").status_code == 403

    def test_unknown_cart_is_404(self, client):
        assert place(client, "missing", key="key-1").status_code == 404

    def test_unknown_order_is_404(self, client):
        assert client.get("/orders/missing").status_code == 404

    def test_patch_status(self, client, filled_cart_id):
        order_id = place(client, filled_cart_id, key="key-1").json()["order_id"]

        resp = client.patch(f"/orders/{order_id}/status", json={"status": "Accepted", "notes": "ok"})

        assert resp.status_code == 200
        assert resp.json() == {"ok": True}
        history = client.get(f"/orders/{order_id}").json()["status_history"]
        assert [h["status"] for h in history] == ["Pending", "Accepted"]

    def test_patch_status_unknown_order(self, client):
        resp = client.patch("/orders/missing/status", json={"status": "Accepted"})

        assert resp.status_code == 404

    def test_patch_status_rejects_unknown_status(self, client, filled_cart_id):
        order_id = place(client, filled_cart_id, key="key-1").json()["order_id"]

        assert client.patch(f"/orders/{order_id}/status", json={"status": "Lost"}).status_code == 422
