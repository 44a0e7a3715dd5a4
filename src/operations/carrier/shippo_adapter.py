"""Shippo carrier adapter: buys labels through the Shippo REST API.

A label purchase is two calls: create a shipment to get rate quotes, then
create a transaction for the chosen rate. Whether labels are real or
sandbox is decided by the API key (``shippo_test_...`` keys are sandbox).
"""

import httpx
import structlog

from operations.carrier.port import CarrierError, CarrierPort
from operations.carrier.rates import select_rate

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://api.goshippo.com"
LABEL_FILE_TYPE = "PDF_A4"


class ShippoCarrier(CarrierPort):
    """Production carrier adapter backed by Shippo."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={
                "Authorization": f"ShippoToken {self.api_key}",
                "Content-Type": "application/json",
            },
        )

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> dict:
        if response.is_error:
            try:
                detail = response.json()
            except ValueError:
                detail = response.text
            raise CarrierError(f"Shippo {action} failed ({response.status_code}): {detail}")
        return response.json()

    async def purchase_label(
        self,
        address_from: dict,
        address_to: dict,
        parcel: dict,
        carrier_account: str | None = None,
        servicelevel_token: str | None = None,
        test: bool = False,
    ) -> dict:
        async with self._client() as client:
            try:
                shipment_response = await client.post(
                    "/shipments/",
                    json={
                        "address_from": address_from,
                        "address_to": address_to,
                        "parcels": [parcel],
                        "test": test,
                        "async": False,
                    },
                )
            except httpx.HTTPError as exc:
                raise CarrierError(f"Shippo API error: {exc}") from exc
            shipment = self._raise_for_status(shipment_response, "shipment")

            rate = select_rate(shipment.get("rates") or [], servicelevel_token, carrier_account)
            logger.info(
                "Shippo rate selected",
                shipment=shipment.get("object_id"),
                provider=rate.get("provider"),
                servicelevel=(rate.get("servicelevel") or {}).get("token"),
                amount=rate.get("amount"),
            )

            try:
                transaction_response = await client.post(
                    "/transactions/",
                    json={
                        "rate": rate["object_id"],
                        "label_file_type": LABEL_FILE_TYPE,
                        "test": test,
                        "async": False,
                    },
                )
            except httpx.HTTPError as exc:
                raise CarrierError(f"Shippo transaction error: {exc}") from exc
            transaction = self._raise_for_status(transaction_response, "transaction")

        if transaction.get("status") != "SUCCESS" or not transaction.get("label_url"):
            messages = transaction.get("messages") or []
            reason = messages[0].get("text") if messages else "Label creation failed"
            raise CarrierError(f"Shippo transaction error: {reason}")

        servicelevel = rate.get("servicelevel") or {}
        return {
            "transaction": {
                "shippo_id": transaction.get("object_id"),
                "status": transaction.get("status"),
                "tracking_number": transaction.get("tracking_number"),
                "tracking_url_provider": transaction.get("tracking_url_provider"),
                "label_url": transaction.get("label_url"),
                "tracking_status": transaction.get("tracking_status"),
                "rate": {
                    "amount": rate.get("amount"),
                    "currency": rate.get("currency") or "USD",
                    "provider": rate.get("provider") or "",
                },
            },
            "shipment": {
                "test": bool(shipment.get("test", test)),
                "carrier_account": rate.get("carrier_account") or "",
                "servicelevel_token": servicelevel.get("token") or "",
                "servicelevel_name": servicelevel.get("name") or "",
            },
            "tracking_status": transaction.get("tracking_status"),
        }
