"""Order domain events."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from operations.domain import operations


@operations.event(part_of="Order")
class OrderPlaced:
    """A customer completed checkout and an order was recorded."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    shipping_method = String(required=True)
    order_status = String(required=True)
    total_amount = Float(required=True)
    item_count = Integer(required=True)
    order_date = DateTime(required=True)


@operations.event(part_of="Order")
class OrderStatusChanged:
    """An operator moved the order to a new status."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@operations.event(part_of="Order")
class ShipmentLinked:
    """A shipping label was purchased and linked to the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    shipping_id = Identifier(required=True)
    linked_at = DateTime(required=True)


@operations.event(part_of="Order")
class TrackingStatusApplied:
    """A carrier tracking update was applied to the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    tracking_status = String(required=True)
    previous_status = String(required=True)
    order_status = String(required=True)
    delivered_at = DateTime()
    applied_at = DateTime(required=True)
