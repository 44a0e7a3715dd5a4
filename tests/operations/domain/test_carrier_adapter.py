import asyncio
import json

import httpx
import pytest
from operations.carrier import get_carrier, reset_carrier
from operations.carrier.fake_adapter import FakeCarrier
from operations.carrier.port import CarrierError
from operations.carrier.shippo_adapter import ShippoCarrier

ADDRESS = {"name": "Maya Lin", "street1": "1 Elm St", "city": "Austin", "state": "TX", "zip": "78701"}
PARCEL = {"length": "10", "width": "8", "height": "4", "distance_unit": "in", "weight": "2", "mass_unit": "lb"}


class TestFakeCarrier:
    def test_sells_label_and_records_call(self):
        carrier = FakeCarrier()
        carrier.configure(tracking_number="1Z999")

        result = asyncio.run(carrier.purchase_label(ADDRESS, ADDRESS, PARCEL, test=True))

        assert result["transaction"]["tracking_number"] == "1Z999"
        assert result["transaction"]["status"] == "SUCCESS"
        assert result["shipment"]["test"] is True
        assert len(carrier.calls) == 1
        assert carrier.calls[0]["parcel"] == PARCEL

    def test_configured_failure(self):
        carrier = FakeCarrier()
        carrier.configure(should_succeed=False, failure_reason="Address not deliverable")

        with pytest.raises(CarrierError, match="Address not deliverable"):
            asyncio.run(carrier.purchase_label(ADDRESS, ADDRESS, PARCEL))


class TestCarrierSelection:
    def test_fake_is_default(self, monkeypatch):
        monkeypatch.delenv("CARRIER_ADAPTER", raising=False)
        reset_carrier()
        assert isinstance(get_carrier(), FakeCarrier)

    def test_shippo_requires_api_key(self, monkeypatch):
        monkeypatch.setenv("CARRIER_ADAPTER", "shippo")
        monkeypatch.delenv("SHIPPO_API_KEY", raising=False)
        reset_carrier()
        with pytest.raises(ValueError, match="SHIPPO_API_KEY"):
            get_carrier()

    def test_shippo_with_api_key(self, monkeypatch):
        monkeypatch.setenv("CARRIER_ADAPTER", "shippo")
        monkeypatch.setenv("SHIPPO_API_KEY", "shippo_test_abc")
        reset_carrier()
        assert isinstance(get_carrier(), ShippoCarrier)


def _shippo_transport(transaction_status="SUCCESS", shipment_status=200, seen=None):
    seen = seen if seen is not None else []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/shipments/":
            if shipment_status != 200:
                return httpx.Response(shipment_status, json={"detail": "Invalid token"})
            return httpx.Response(
                201,
                json={
                    "object_id": "shp_1",
                    "test": True,
                    "rates": [
                        {
                            "object_id": "rate_ups",
                            "provider": "UPS",
                            "amount": "5.00",
                            "servicelevel": {"token": "ups_ground", "name": "Ground"},
                            "carrier_account": "ca_ups",
                        },
                        {
                            "object_id": "rate_ga",
                            "provider": "USPS",
                            "amount": "7.85",
                            "currency": "USD",
                            "servicelevel": {"token": "usps_ground_advantage", "name": "Ground Advantage"},
                            "carrier_account": "ca_usps",
                        },
                    ],
                },
            )
        if request.url.path == "/transactions/":
            body = {"object_id": "txn_1", "status": transaction_status}
            if transaction_status == "SUCCESS":
                body.update(
                    tracking_number="SHIPPO_TRANSIT",
                    tracking_url_provider="https://tools.usps.com/go/TrackConfirmAction?tLabels=SHIPPO_TRANSIT",
                    label_url="https://shippo-delivery.s3.amazonaws.com/label.pdf",
                    tracking_status="UNKNOWN",
                )
            else:
                body["messages"] = [{"text": "Address could not be validated"}]
            return httpx.Response(201, json=body)
        return httpx.Response(404)

    return httpx.MockTransport(handler)


class TestShippoCarrier:
    def test_buys_cheapest_ground_advantage_label(self):
        seen = []
        carrier = ShippoCarrier("shippo_test_abc", transport=_shippo_transport(seen=seen))

        result = asyncio.run(carrier.purchase_label(ADDRESS, ADDRESS, PARCEL, test=True))

        assert result["transaction"]["shippo_id"] == "txn_1"
        assert result["transaction"]["tracking_number"] == "SHIPPO_TRANSIT"
        assert result["transaction"]["rate"] == {"amount": "7.85", "currency": "USD", "provider": "USPS"}
        assert result["shipment"]["servicelevel_token"] == "usps_ground_advantage"
        assert result["shipment"]["test"] is True

        assert seen[0].headers["Authorization"] == "ShippoToken shippo_test_abc"
        transaction_body = json.loads(seen[1].content)
        assert transaction_body["rate"] == "rate_ga"
        assert transaction_body["label_file_type"] == "PDF_A4"

    def test_requested_service_level(self):
        seen = []
        carrier = ShippoCarrier("shippo_test_abc", transport=_shippo_transport(seen=seen))
        asyncio.run(carrier.purchase_label(ADDRESS, ADDRESS, PARCEL, servicelevel_token="ups_ground"))
        assert json.loads(seen[1].content)["rate"] == "rate_ups"

    @pytest.mark.parametrize("test_mode", [True, False])
    def test_test_mode_sent_on_both_calls(self, test_mode):
        seen = []
        carrier = ShippoCarrier("shippo_test_abc", transport=_shippo_transport(seen=seen))
        asyncio.run(carrier.purchase_label(ADDRESS, ADDRESS, PARCEL, test=test_mode))
        assert json.loads(seen[0].content)["test"] is test_mode
        assert json.loads(seen[1].content)["test"] is test_mode

    def test_failed_transaction(self):
        carrier = ShippoCarrier("shippo_test_abc", transport=_shippo_transport(transaction_status="ERROR"))
        with pytest.raises(CarrierError, match="Address could not be validated"):
            asyncio.run(carrier.purchase_label(ADDRESS, ADDRESS, PARCEL))

    def test_http_error(self):
        carrier = ShippoCarrier("bad-key", transport=_shippo_transport(shipment_status=401))
        with pytest.raises(CarrierError, match="401"):
            asyncio.run(carrier.purchase_label(ADDRESS, ADDRESS, PARCEL))
