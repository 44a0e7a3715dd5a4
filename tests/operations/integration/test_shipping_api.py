"""Integration tests for label purchase, shipment lookup and the carrier webhook."""

import inspect

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from operations.api.routes import order_router, shipping_router
from operations.carrier import set_carrier
from operations.carrier.fake_adapter import FakeCarrier
from operations.customer.registration import RegisterCustomer
from operations.shipment.reconciliation import reconcile_in_background
from protean import current_domain
from protean.integrations.fastapi import register_exception_handlers

PACKAGE = {"dimensions": {"length": 10, "width": 8, "height": 4}, "weight": 2}


@pytest.fixture()
def carrier():
    fake = FakeCarrier()
    fake.configure(tracking_number="1Z999", test=True)
    set_carrier(fake)
    return fake


@pytest.fixture()
def client(carrier):
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(shipping_router)
    register_exception_handlers(app)
    return TestClient(app)


@pytest.fixture()
def customer_id():
    return current_domain.process(
        RegisterCustomer(first_name="Maya", last_name="Lin", email="maya@example.com"),
        asynchronous=False,
    )


def _place(client, customer_id, shipping_method="Ground", is_test_order=False):
    response = client.post(
        "/orders",
        json={
            "customer_id": customer_id,
            "items": [{"kind": "product", "item_id": "prod-1", "name": "Cuff", "unit_price": 140.0}],
            "shipping_method": shipping_method,
            "shipping_address": "1 Elm St, Austin, TX 78701",
            "is_test_order": is_test_order,
        },
    )
    return response.json()["order_id"]


def _track(status, tracking_number="1Z999", test=False):
    return {
        "event": "track_updated",
        "test": test,
        "data": {
            "tracking_number": tracking_number,
            "tracking_status": {"status": status, "status_date": "2025-06-03T14:05:00Z"},
        },
    }


class TestCreateShipments:
    def test_creates_labels(self, client, customer_id):
        order_id = _place(client, customer_id)

        response = client.post("/shipping", json={"order_ids": [order_id], "package_details": [PACKAGE]})

        assert response.status_code == 201
        result = response.json()[0]
        assert result["order_id"] == order_id
        assert result["tracking_number"] == "1Z999"
        assert result["tracking_status"] == "pre_transit"
        assert result["test"] is True
        assert client.get(f"/orders/{order_id}").json()["order_status"] == "shipped"

    def test_missing_orders(self, client, customer_id, carrier):
        order_id = _place(client, customer_id)

        response = client.post(
            "/shipping",
            json={"order_ids": [order_id, "ord-missing"], "package_details": [PACKAGE, PACKAGE]},
        )

        assert response.status_code == 400
        assert response.json()["missingIds"] == ["ord-missing"]
        assert carrier.calls == []

    def test_mismatched_lengths(self, client, customer_id):
        response = client.post("/shipping", json={"order_ids": [_place(client, customer_id)], "package_details": []})
        assert response.status_code == 400
        assert "error" in response.json()

    def test_invalid_json(self, client):
        response = client.post("/shipping", content=b"{not json", headers={"Content-Type": "application/json"})
        assert response.status_code == 400

    def test_carrier_failure(self, client, customer_id, carrier):
        carrier.configure(should_succeed=False, failure_reason="Carrier unavailable")
        order_id = _place(client, customer_id)

        response = client.post("/shipping", json={"order_ids": [order_id], "package_details": [PACKAGE]})

        assert response.status_code == 500
        assert response.json() == {"error": "Carrier unavailable"}
        assert client.get(f"/orders/{order_id}").json()["order_status"] == "pending"


class TestGetShipments:
    def test_shipment_with_history(self, client, customer_id):
        order_id = _place(client, customer_id)
        client.post("/shipping", json={"order_ids": [order_id], "package_details": [PACKAGE]})

        shipments = client.get(f"/shipping/{order_id}").json()

        assert len(shipments) == 1
        assert shipments[0]["tracking_number"] == "1Z999"
        assert [entry["status"] for entry in shipments[0]["status_history"]] == ["created"]

    def test_no_shipments(self, client):
        assert client.get("/shipping/ord-none").json() == []


class TestCarrierWebhook:
    def test_acknowledged_and_reconciled(self, client, customer_id):
        order_id = _place(client, customer_id)
        client.post("/shipping", json={"order_ids": [order_id], "package_details": [PACKAGE]})

        response = client.post("/shipping/webhook", json=_track("DELIVERED"))

        assert response.status_code == 200
        assert response.json() == {"status": "received"}
        order = client.get(f"/orders/{order_id}").json()
        assert order["order_status"] == "delivered"
        assert order["delivered_at"] is not None

        shipment = client.get(f"/shipping/{order_id}").json()[0]
        assert [entry["status"] for entry in shipment["status_history"]] == ["created", "delivered"]
        assert shipment["webhook_event_count"] == 1

    def test_test_order_isolated_from_production_webhook(self, client, customer_id):
        order_id = _place(client, customer_id, is_test_order=True)
        client.post("/shipping", json={"order_ids": [order_id], "package_details": [PACKAGE]})

        client.post("/shipping/webhook", json=_track("DELIVERED", test=False))

        assert client.get(f"/orders/{order_id}").json()["order_status"] == "shipped"
        shipment = client.get(f"/shipping/{order_id}").json()[0]
        assert len(shipment["status_history"]) == 2

    def test_invalid_json_still_acknowledged(self, client):
        response = client.post("/shipping/webhook", content=b"<xml/>", headers={"Content-Type": "text/plain"})
        assert response.status_code == 200

    def test_unknown_tracking_number_acknowledged(self, client):
        response = client.post("/shipping/webhook", json=_track("TRANSIT", tracking_number="NOPE"))
        assert response.status_code == 200

    def test_other_events_acknowledged(self, client):
        response = client.post("/shipping/webhook", json={"event": "transaction_created", "data": {}})
        assert response.status_code == 200

    def test_reconciliation_runs_in_threadpool(self, client, customer_id):
        # Sync task bodies are run by Starlette in the threadpool, off the event loop
        assert not inspect.iscoroutinefunction(reconcile_in_background)

        order_id = _place(client, customer_id)
        client.post("/shipping", json={"order_ids": [order_id], "package_details": [PACKAGE]})
        response = client.post("/shipping/webhook", json=_track("TRANSIT"))

        assert response.json() == {"status": "received"}
        assert client.get(f"/orders/{order_id}").json()["order_status"] == "in_transit"


class TestLargeBatches:
    def test_label_batch_over_one_hundred_orders(self, client, customer_id):
        order_ids = [_place(client, customer_id) for _ in range(105)]

        response = client.post(
            "/shipping",
            json={"order_ids": order_ids, "package_details": [PACKAGE] * len(order_ids)},
        )

        assert response.status_code == 201
        assert len(response.json()) == 105
