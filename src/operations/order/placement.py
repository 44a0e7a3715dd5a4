"""Order placement: command and handler."""

import json

from protean import handle
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from operations.domain import operations
from operations.order.order import Order


@operations.command(part_of="Order")
class PlaceOrder:
    """Record an order completed at checkout."""

    customer_id = Identifier(required=True)
    items = Text(required=True, sanitize=False)  # JSON list of {kind, item_id, name, unit_price}
    shipping_method = String(required=True, max_length=100)
    payment_method = String(max_length=100)
    shipping_address = Text(sanitize=False)
    billing_address = Text(sanitize=False)
    order_status = String(max_length=50)
    is_test_order = Boolean(default=False)


@operations.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
        order = Order.place(
            customer_id=command.customer_id,
            items_data=items_data,
            shipping_method=command.shipping_method,
            shipping_address=command.shipping_address,
            billing_address=command.billing_address,
            payment_method=command.payment_method,
            order_status=command.order_status,
            is_test_order=command.is_test_order,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)
