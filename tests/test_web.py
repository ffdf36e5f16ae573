from __future__ import annotations

from typing import Any, Dict, Iterator

import pytest
from fastapi.testclient import TestClient

from resto_orders.adapters.inbound.web.fastapi_app import create_app
from resto_orders.bootstrap import build_runtime
from resto_orders.config import Settings


@pytest.fixture()
def client() -> Iterator[TestClient]:
    runtime = build_runtime(Settings(takeaway_shipping_cost=3000))
    with TestClient(create_app(runtime)) as c:
        yield c


def _dine_in(client: TestClient, **overrides: Any) -> Dict[str, Any]:
    body = {
        "kind": "dine_in",
        "table_ref": "T2",
        "party_size": 3,
        "items": [
            {
                "product_ref": "prod-classic",
                "name": "Classic burger",
                "unit_price": 18000,
                "quantity": 2,
            },
            {
                "product_ref": "prod-lemonade",
                "name": "Lemonade",
                "unit_price": 6000,
                "comment": "no ice",
            },
        ],
    }
    body.update(overrides)
    r = client.post("/orders", json=body)
    assert r.status_code == 201, r.text
    return r.json()


def test_health(client: TestClient):
    assert client.get("/health").json() == {"status": "ok"}


def test_create_dine_in_order(client: TestClient):
    order = _dine_in(client)

    assert order["order_status"] == "in_progress"
    assert order["kitchen_status"] == "not_sent"
    assert order["table_status"] == "free"
    assert order["subtotal"] == 42000
    assert order["amount_due_display"] == "$ 42.000"
    assert len(order["pending_items"]) == 2
    assert order["sent_items"] == []

    fetched = client.get(f"/orders/{order['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["id"] == order["id"]


def test_takeaway_gets_default_shipping(client: TestClient):
    r = client.post(
        "/orders",
        json={"kind": "takeaway", "client_info": {"name": "Ana", "phone": "300"}},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["order_status"] == "pending_validation"
    assert body["shipping_cost"] == 3000
    assert body["amount_due"] == 3000
    assert body["table_status"] is None


def test_takeaway_without_client_is_400(client: TestClient):
    r = client.post("/orders", json={"kind": "takeaway"})
    assert r.status_code == 400
    assert r.json()["type"] == "InvalidInputError"


def test_malformed_body_is_400(client: TestClient):
    r = client.post("/orders", json={"kind": "drive_through"})
    assert r.status_code == 400
    assert r.json()["type"] == "RequestValidationError"


def test_unknown_order_is_404(client: TestClient):
    r = client.get("/orders/nope")
    assert r.status_code == 404
    assert r.json()["type"] == "NotFoundError"


def test_kitchen_flow_over_http(client: TestClient):
    order = _dine_in(client)
    oid = order["id"]
    burger_id = order["pending_items"][0]["id"]

    r = client.post(f"/orders/{oid}/dispatch", json={"item_ids": [burger_id]})
    assert r.status_code == 200, r.text
    assert r.json()["kitchen_status"] == "received"
    assert r.json()["table_status"] == "in_kitchen"

    locked = client.patch(f"/orders/{oid}/items/{burger_id}", json={"quantity": 1})
    assert locked.status_code == 409
    assert locked.json()["type"] == "ItemLockedError"

    tickets = client.get("/kitchen/tickets").json()
    assert len(tickets) == 1
    assert tickets[0]["lines"][0]["quantity"] == 2

    assert client.post(f"/orders/{oid}/dispatch").status_code == 200
    assert client.post(f"/orders/{oid}/ready").json()["table_status"] == "to_serve"
    assert client.post(f"/orders/{oid}/served").json()["kitchen_status"] == "served"

    tracker = client.get(f"/orders/{oid}/tracker").json()
    assert tracker["step"] == 3
    assert tracker["completed"] is True

    promo = {
        "promotion_id": "p10",
        "name": "10% off",
        "type": "percentage",
        "discount_value": "10",
    }
    discounted = client.post(f"/orders/{oid}/promotions", json={"promotions": [promo]})
    assert discounted.json()["total"] == 37800

    closed = client.post(f"/orders/{oid}/finalize", json={"payment_method": "cash"})
    assert closed.status_code == 200, closed.text
    assert closed.json()["order_status"] == "finalized"
    assert closed.json()["profit"] is not None

    again = client.post(f"/orders/{oid}/finalize", json={"payment_method": "cash"})
    assert again.status_code == 409

    report = client.get("/reports/sales").json()
    assert report["order_count"] == 1
    assert report["total_sales"] == 37800


def test_illegal_transition_is_409(client: TestClient):
    order = _dine_in(client)
    r = client.post(f"/orders/{order['id']}/ready")
    assert r.status_code == 409
    assert r.json()["type"] == "IllegalTransitionError"


def test_cancel_before_dispatch(client: TestClient):
    order = _dine_in(client)
    assert client.delete(f"/orders/{order['id']}").status_code == 204
    assert client.get(f"/orders/{order['id']}").status_code == 404


def test_edit_pending_items(client: TestClient):
    order = _dine_in(client)
    oid = order["id"]
    drink_id = order["pending_items"][1]["id"]

    cheese = {"product_ref": "prod-cheese", "name": "Cheeseburger", "unit_price": 21000}
    r = client.post(f"/orders/{oid}/items", json={"items": [cheese]})
    assert r.status_code == 200
    assert r.json()["subtotal"] == 63000

    r = client.patch(f"/orders/{oid}/items/{drink_id}", json={"comment": ""})
    assert r.json()["pending_items"][1]["comment"] is None

    r = client.delete(f"/orders/{oid}/items/{drink_id}")
    assert r.json()["subtotal"] == 57000


def test_takeaway_board_and_notifications(client: TestClient):
    r = client.post(
        "/orders",
        json={"kind": "takeaway", "client_info": {"name": "Ana", "phone": "300"}},
    )
    oid = r.json()["id"]

    board = client.get("/takeaway").json()
    assert [o["id"] for o in board["pending"]] == [oid]
    assert client.get("/notifications").json()["pending_takeaway"] == 1

    validated = client.post(f"/orders/{oid}/validate", json={"send_to_kitchen": False})
    assert validated.json()["order_status"] == "in_progress"
    assert client.get("/takeaway").json()["pending"] == []


def test_changes_version_moves_on_writes(client: TestClient):
    before = client.get("/changes").json()["version"]
    _dine_in(client)
    assert client.get("/changes").json()["version"] == before + 1


def test_list_orders_filter(client: TestClient):
    _dine_in(client)
    _dine_in(client, table_ref="T3")
    assert len(client.get("/orders").json()) == 2
    assert client.get("/orders", params={"kind": "takeaway"}).json() == []
