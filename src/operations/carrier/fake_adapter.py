"""Fake carrier adapter: deterministic carrier for testing and development.

Sells labels without any network call. Configurable success/failure and
tracking number so tests can drive the reconciliation path.
"""

from uuid import uuid4

from operations.carrier.port import CarrierError, CarrierPort


class FakeCarrier(CarrierPort):
    """Fake carrier that always succeeds by default."""

    def __init__(self):
        self.calls: list[dict] = []
        self.configure()

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Carrier unavailable",
        tracking_number: str | None = None,
        test: bool | None = None,
        tracking_status: str | None = None,
    ):
        """Configure the fake carrier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.tracking_number = tracking_number
        self.test = test
        self.tracking_status = tracking_status

    async def purchase_label(
        self,
        address_from: dict,
        address_to: dict,
        parcel: dict,
        carrier_account: str | None = None,
        servicelevel_token: str | None = None,
        test: bool = False,
    ) -> dict:
        self.calls.append(
            {
                "address_from": address_from,
                "address_to": address_to,
                "parcel": parcel,
                "carrier_account": carrier_account,
                "servicelevel_token": servicelevel_token,
                "test": test,
            }
        )
        if not self.should_succeed:
            raise CarrierError(self.failure_reason)

        transaction_id = uuid4().hex
        tracking_number = self.tracking_number or f"FAKE{uuid4().hex[:12].upper()}"
        response = {
            "transaction": {
                "shippo_id": transaction_id,
                "status": "SUCCESS",
                "tracking_number": tracking_number,
                "tracking_url_provider": f"https://fake-carrier.example.com/track/{tracking_number}",
                "label_url": f"https://fake-carrier.example.com/labels/{transaction_id}.pdf",
                "rate": {"amount": "7.85", "currency": "USD", "provider": "USPS"},
            },
            "shipment": {
                "test": test if self.test is None else self.test,
                "carrier_account": carrier_account or "fake-usps-account",
                "servicelevel_token": servicelevel_token or "usps_ground_advantage",
                "servicelevel_name": "Ground Advantage",
            },
        }
        if self.tracking_status:
            response["tracking_status"] = self.tracking_status
        return response
