"""Order aggregate: the studio's record of a customer purchase.

Orders are placed at checkout, linked to a shipment when a label is
purchased, and moved along by carrier tracking updates. Pickup orders
never take part in delivery tracking; operators close them out by hand.

Status values:
    pending → shipped → in_transit → delivered
    in_transit → delivery_issue
    pending/pickup → fulfilled (Pickup orders only)
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    String,
    Text,
)

from operations.domain import operations
from operations.order.events import (
    OrderPlaced,
    OrderStatusChanged,
    ShipmentLinked,
    TrackingStatusApplied,
)

PICKUP = "Pickup"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PICKUP = "pickup"
    SHIPPED = "shipped"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    DELIVERY_ISSUE = "delivery_issue"
    FULFILLED = "fulfilled"


class ItemKind(Enum):
    PRODUCT = "product"
    COURSE = "course"


_INITIAL_STATUSES = {OrderStatus.PENDING, OrderStatus.PICKUP}

# Carrier status (lower-cased) → order status written by tracking updates
_TRACKING_TRANSITIONS = {
    "delivered": OrderStatus.DELIVERED,
    "transit": OrderStatus.IN_TRANSIT,
    "failure": OrderStatus.DELIVERY_ISSUE,
    "returned": OrderStatus.DELIVERY_ISSUE,
}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@operations.entity(part_of="Order")
class LineItem:
    """A catalog product or course purchased on the order."""

    kind = String(required=True, choices=ItemKind)
    item_id = Identifier(required=True)
    name = String(max_length=255, sanitize=False)
    unit_price = Float(required=True, min_value=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@operations.aggregate
class Order:
    customer_id = Identifier(required=True)
    items = HasMany(LineItem)
    order_date = DateTime(required=True)
    total_amount = Float(default=0.0)
    order_status = String(
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    shipping_method = String(required=True, max_length=100)
    payment_method = String(max_length=100)
    shipping_address = Text(sanitize=False)
    billing_address = Text(sanitize=False)
    shipping_id = Identifier()
    is_test_order = Boolean(default=False)
    tracking_status = String(max_length=50)
    delivered_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id: str,
        items_data: list[dict],
        shipping_method: str,
        shipping_address: str | None = None,
        billing_address: str | None = None,
        payment_method: str | None = None,
        order_status: str | None = None,
        is_test_order: bool = False,
    ):
        """Record a new order. The total is a snapshot of the item prices."""
        status = OrderStatus(order_status or OrderStatus.PENDING.value)
        if status not in _INITIAL_STATUSES:
            raise ValidationError({"order_status": [f"Orders cannot be placed as {status.value}"]})

        now = datetime.now(UTC)
        total = round(sum(float(item["unit_price"]) for item in items_data), 2)
        order = cls(
            customer_id=customer_id,
            order_date=now,
            total_amount=total,
            order_status=status.value,
            shipping_method=shipping_method,
            payment_method=payment_method,
            shipping_address=shipping_address,
            billing_address=billing_address,
            is_test_order=is_test_order,
            updated_at=now,
        )
        for item_data in items_data:
            order.add_items(LineItem(**item_data))
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=customer_id,
                shipping_method=shipping_method,
                order_status=status.value,
                total_amount=total,
                item_count=len(items_data),
                order_date=now,
            )
        )
        return order

    @property
    def is_pickup(self) -> bool:
        return self.shipping_method == PICKUP

    # -------------------------------------------------------------------
    # Operator actions
    # -------------------------------------------------------------------
    def change_status(self, new_status: str) -> None:
        """Set the status by hand. Only Pickup orders may be marked fulfilled."""
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise ValidationError({"order_status": [f"Unknown order status: {new_status}"]}) from None

        if target == OrderStatus.FULFILLED and not self.is_pickup:
            raise ValidationError({"order_status": ["Only pickup orders can be marked as fulfilled"]})

        previous = self.order_status
        now = datetime.now(UTC)
        self.order_status = target.value
        self.updated_at = now
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                new_status=target.value,
                changed_at=now,
            )
        )

    def link_shipment(self, shipping_id: str) -> None:
        """Attach a purchased shipment; the order is now shipped."""
        if self.is_pickup:
            raise ValidationError({"shipping_method": ["Pickup orders do not ship"]})

        now = datetime.now(UTC)
        self.shipping_id = shipping_id
        self.order_status = OrderStatus.SHIPPED.value
        self.updated_at = now
        self.raise_(
            ShipmentLinked(
                order_id=str(self.id),
                shipping_id=shipping_id,
                linked_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Carrier tracking
    # -------------------------------------------------------------------
    def apply_tracking_update(self, status: str, status_date: datetime | None = None) -> None:
        """Fold a carrier tracking status into the order.

        Delivered, transit, failure and returned move the order status;
        any other carrier status only refreshes ``tracking_status``.
        """
        if self.is_pickup:
            raise ValidationError({"shipping_method": ["Pickup orders are not tracked by the carrier"]})

        carrier_status = (status or "").lower()
        previous = self.order_status
        now = datetime.now(UTC)

        target = _TRACKING_TRANSITIONS.get(carrier_status)
        if target is not None:
            self.order_status = target.value
        self.tracking_status = carrier_status
        if target == OrderStatus.DELIVERED:
            self.delivered_at = status_date or now
        self.updated_at = now

        self.raise_(
            TrackingStatusApplied(
                order_id=str(self.id),
                tracking_status=carrier_status,
                previous_status=previous,
                order_status=self.order_status,
                delivered_at=self.delivered_at,
                applied_at=now,
            )
        )
