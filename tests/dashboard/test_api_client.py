"""Tests for the dashboard's HTTP client against a mocked operations API."""

import asyncio
import json

import httpx
import pytest
from dashboard.client import ApiError, StudioApiClient, extract_error_detail

ORDER = {
    "id": "ord-1",
    "customer_id": "cust-1",
    "customer": {"id": "cust-1", "first_name": "Maya", "last_name": "Lin", "email": "maya@example.com"},
    "order_date": "2025-06-01T10:00:00Z",
    "total_amount": 85.0,
    "order_status": "pending",
    "shipping_method": "Pickup",
}


def _run(handler, call):
    async def scenario():
        client = StudioApiClient(base_url="http://ops.test", transport=httpx.MockTransport(handler))
        try:
            return await call(client)
        finally:
            await client.close()

    return asyncio.run(scenario())


def test_fetch_orders_sends_filter_and_query():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[ORDER])

    orders = _run(handler, lambda client: client.fetch_orders("pickup", "maya"))

    assert seen[0].url.params["filter"] == "pickup"
    assert seen[0].url.params["q"] == "maya"
    assert orders[0].is_pickup
    assert orders[0].customer.full_name == "Maya Lin"


def test_update_order_statuses_payload():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"status": "updated", "modified_count": 2})

    modified = _run(handler, lambda client: client.update_order_statuses(["a", "b"], "fulfilled"))

    assert modified == 2
    assert seen[0].method == "PUT"
    assert json.loads(seen[0].content) == {"orderIds": ["a", "b"], "order_status": "fulfilled"}


def test_create_shipments_parses_results():
    def handler(request):
        body = json.loads(request.content)
        return httpx.Response(
            201,
            json=[
                {"order_id": oid, "tracking_number": "1Z999", "test": body["test_mode"], "status": "success"}
                for oid in body["order_ids"]
            ],
        )

    results = _run(handler, lambda client: client.create_shipments(["ord-1"], [{"weight": 2}], test_mode=True))

    assert results[0].tracking_number == "1Z999"
    assert results[0].test is True
    assert results[0].tracking_status == "pre_transit"


def test_error_carries_missing_ids():
    def handler(request):
        return httpx.Response(400, json={"error": "Some orders were not found", "missingIds": ["ord-9"]})

    with pytest.raises(ApiError) as exc:
        _run(handler, lambda client: client.create_shipments(["ord-9"], [{}]))

    assert exc.value.status_code == 400
    assert exc.value.message == "Some orders were not found"
    assert exc.value.missing_ids == ["ord-9"]


class TestExtractErrorDetail:
    def test_field_errors(self):
        response = httpx.Response(400, json={"error": {"order_status": ["Unknown order status: lost"]}})
        assert extract_error_detail(response) == "order_status: ['Unknown order status: lost']"

    def test_pydantic_detail(self):
        response = httpx.Response(422, json={"detail": [{"loc": ["body", "items"], "msg": "Field required"}]})
        assert extract_error_detail(response) == "body.items: Field required"

    def test_plain_text(self):
        assert extract_error_detail(httpx.Response(502, text="Bad gateway")) == "Bad gateway"
