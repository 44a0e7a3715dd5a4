"""Shipment persistence: commands and handler for label purchases and
tracking updates."""

import json

from protean import handle
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from operations.domain import operations
from operations.shipment.shipment import (
    DEFAULT_TRACKING_STATUS,
    CarrierService,
    Parcel,
    PostalAddress,
    Shipment,
    Transaction,
    TransactionStatus,
)


def _load(value):
    return json.loads(value) if isinstance(value, str) else value


@operations.command(part_of="Shipment")
class RecordShipment:
    """Persist a label purchased from the carrier."""

    order_id = Identifier(required=True)
    address_from = Text(required=True, sanitize=False)  # JSON PostalAddress
    address_to = Text(required=True, sanitize=False)  # JSON PostalAddress
    parcel = Text(required=True, sanitize=False)  # JSON Parcel
    carrier_response = Text(required=True, sanitize=False)  # JSON {transaction, shipment}


@operations.command(part_of="Shipment")
class RecordTrackingUpdate:
    """Append a carrier tracking event to a shipment's audit trail."""

    shipment_id = Identifier(required=True)
    event = String(required=True, max_length=100)
    status = String(required=True, max_length=50)
    status_details = String(max_length=1000, sanitize=False)
    status_date = DateTime()
    event_data = Text(sanitize=False)  # JSON tracking_status as received
    received_at = DateTime()


@operations.command_handler(part_of=Shipment)
class ShipmentRecordingHandler:
    @handle(RecordShipment)
    def record_shipment(self, command):
        response = _load(command.carrier_response)
        transaction = response.get("transaction") or {}
        carrier_shipment = response.get("shipment") or {}
        rate = transaction.get("rate") or {}

        shipment = Shipment.create(
            order_id=command.order_id,
            address_from=PostalAddress(**_load(command.address_from)),
            address_to=PostalAddress(**_load(command.address_to)),
            parcel=Parcel(**_load(command.parcel)),
            service=CarrierService(
                carrier_account=carrier_shipment.get("carrier_account"),
                servicelevel_token=carrier_shipment.get("servicelevel_token"),
                servicelevel_name=carrier_shipment.get("servicelevel_name"),
                test=bool(carrier_shipment.get("test")),
            ),
            transaction=Transaction(
                carrier_transaction_id=transaction.get("shippo_id"),
                status=transaction.get("status") or TransactionStatus.SUCCESS.value,
                tracking_number=transaction.get("tracking_number"),
                tracking_url=transaction.get("tracking_url_provider"),
                tracking_status=response.get("tracking_status")
                or transaction.get("tracking_status")
                or DEFAULT_TRACKING_STATUS,
                label_url=transaction.get("label_url"),
                rate_amount=float(rate["amount"]) if rate.get("amount") is not None else None,
                rate_currency=rate.get("currency"),
                rate_provider=rate.get("provider"),
            ),
        )
        current_domain.repository_for(Shipment).add(shipment)
        return str(shipment.id)

    @handle(RecordTrackingUpdate)
    def record_tracking_update(self, command):
        repo = current_domain.repository_for(Shipment)
        shipment = repo.get(command.shipment_id)
        shipment.record_tracking_update(
            status=command.status,
            status_details=command.status_details,
            status_date=command.status_date,
            event=command.event,
            payload=_load(command.event_data) if command.event_data else {},
            received_at=command.received_at,
        )
        repo.add(shipment)
        return len(shipment.status_history)
