"""Shared BDD fixtures and step definitions for the operations domain."""

import pytest
from operations.order.events import OrderPlaced, OrderStatusChanged, ShipmentLinked, TrackingStatusApplied
from operations.order.order import Order
from operations.shipment.events import ShipmentCreated, TrackingUpdateRecorded
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

_EVENT_CLASSES = {
    "OrderPlaced": OrderPlaced,
    "OrderStatusChanged": OrderStatusChanged,
    "ShipmentLinked": ShipmentLinked,
    "TrackingStatusApplied": TrackingStatusApplied,
    "ShipmentCreated": ShipmentCreated,
    "TrackingUpdateRecorded": TrackingUpdateRecorded,
}

_DEFAULT_ITEMS = [
    {"kind": "product", "item_id": "prod-ring", "name": "Hammered Silver Ring", "unit_price": 85.0},
    {"kind": "course", "item_id": "course-wax", "name": "Wax Carving Intro", "unit_price": 120.0},
]


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


def _place(shipping_method):
    return Order.place(
        customer_id="cust-bdd",
        items_data=_DEFAULT_ITEMS,
        shipping_method=shipping_method,
        shipping_address="1 Elm St, Austin, TX 78701",
    )


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a pending "{shipping_method}" order'), target_fixture="order")
def pending_order(shipping_method):
    order = _place(shipping_method)
    order._events.clear()
    return order


@given(parsers.cfparse('a shipped "{shipping_method}" order'), target_fixture="order")
def shipped_order(shipping_method):
    order = _place(shipping_method)
    order.link_shipment("shp-bdd")
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.order_status == status


@then(parsers.cfparse('the order tracking status is "{status}"'))
def order_tracking_status_is(order, status):
    assert order.tracking_status == status


@then("the order action fails with a validation error")
def order_action_fails(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse("the order raised a {event_type} event"))
def order_event_raised(order, event_type):
    event_cls = _EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in order._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in order._events]}"


@then(parsers.cfparse("the shipment raised a {event_type} event"))
def shipment_event_raised(shipment, event_type):
    event_cls = _EVENT_CLASSES[event_type]
    assert any(isinstance(e, event_cls) for e in shipment._events)
