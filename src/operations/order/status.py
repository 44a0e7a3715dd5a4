"""Order status changes: bulk operator update and carrier tracking.

The bulk update is all-or-nothing: every order is loaded and validated
before any of them is written.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from operations.domain import operations
from operations.order.order import Order, OrderStatus

logger = structlog.get_logger(__name__)


@operations.command(part_of="Order")
class UpdateOrderStatuses:
    """Move a batch of orders to the same status."""

    order_ids = Text(required=True)  # JSON list of order ids
    order_status = String(required=True, max_length=50)


@operations.command(part_of="Order")
class LinkShipment:
    """Attach a purchased shipment to its order."""

    order_id = Identifier(required=True)
    shipping_id = Identifier(required=True)


@operations.command(part_of="Order")
class ApplyTrackingUpdate:
    """Fold a carrier tracking status into the order."""

    order_id = Identifier(required=True)
    status = String(required=True, max_length=50)
    status_date = DateTime()


@operations.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatuses)
    def update_statuses(self, command):
        order_ids = json.loads(command.order_ids) if isinstance(command.order_ids, str) else command.order_ids
        if not order_ids:
            raise ValidationError({"order_ids": ["At least one order id is required"]})

        repo = current_domain.repository_for(Order)
        orders = repo._dao.query.filter(id__in=order_ids).limit(None).all().items
        found = {str(o.id) for o in orders}
        missing = [oid for oid in order_ids if oid not in found]
        if missing:
            raise ObjectNotFoundError({"order_ids": [f"Orders not found: {', '.join(missing)}"]})

        # Validate the whole batch before writing any of it
        if command.order_status == OrderStatus.FULFILLED.value:
            delivery = [str(o.id) for o in orders if not o.is_pickup]
            if delivery:
                raise ValidationError(
                    {"order_status": [f"Only pickup orders can be marked as fulfilled: {', '.join(delivery)}"]}
                )

        for order in orders:
            order.change_status(command.order_status)
        for order in orders:
            repo.add(order)

        logger.info(
            "Order statuses updated",
            order_count=len(orders),
            order_status=command.order_status,
        )
        return len(orders)

    @handle(LinkShipment)
    def link_shipment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.link_shipment(command.shipping_id)
        repo.add(order)

    @handle(ApplyTrackingUpdate)
    def apply_tracking_update(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.apply_tracking_update(command.status, command.status_date)
        repo.add(order)
        return order.order_status
