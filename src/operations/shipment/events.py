"""Shipment domain events."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from operations.domain import operations


@operations.event(part_of="Shipment")
class ShipmentCreated:
    """A shipping label was purchased for an order."""

    __version__ = 1

    shipment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    tracking_number = String()
    transaction_status = String(required=True)
    test = Boolean(default=False)
    created_at = DateTime(required=True)


@operations.event(part_of="Shipment")
class TrackingUpdateRecorded:
    """A carrier tracking event was appended to the shipment's audit trail."""

    __version__ = 1

    shipment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    tracking_number = String()
    status = String(required=True)
    history_length = Integer(required=True)
    recorded_at = DateTime(required=True)
