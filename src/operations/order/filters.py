"""Order classification, filtering and priority ordering.

Pure functions over an in-memory collection of orders. ``now`` is always
passed in so results are reproducible. Orders may be ``Order`` aggregates,
API records or plain mappings; fields are read by name from either.

Filter buckets overlap: a pending Pickup order counts toward ``pickup``,
``pending`` and possibly ``priority`` at the same time.
"""

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from enum import Enum, IntEnum

from operations.order.order import PICKUP, OrderStatus


class OrderFilter(Enum):
    ALL = "all"
    PICKUP = "pickup"
    PRIORITY = "priority"
    PENDING = "pending"
    DELIVERIES = "deliveries"
    FULFILLED = "fulfilled"


class PriorityLevel(IntEnum):
    """Sort key for the operator's work queue; lower comes first."""

    PICKUP = 1
    URGENT = 2
    NEXT_DAY = 3
    EXPRESS = 4
    PRIORITY = 5
    STANDARD = 6
    SHIPPED = 7
    FULFILLED = 8
    DELIVERED = 9


EXPEDITED_METHODS = {"Express", "Next Day", "Priority"}
STANDARD_METHODS = {"Standard", "Ground"}
PRIORITY_AGE_DAYS = 3

_COMPLETED_STATUSES = {
    OrderStatus.SHIPPED.value,
    OrderStatus.FULFILLED.value,
    OrderStatus.DELIVERED.value,
}

_METHOD_LEVELS = {
    "Next Day": PriorityLevel.NEXT_DAY,
    "Express": PriorityLevel.EXPRESS,
    "Priority": PriorityLevel.PRIORITY,
}

_STATUS_LEVELS = {
    OrderStatus.SHIPPED.value: PriorityLevel.SHIPPED,
    OrderStatus.IN_TRANSIT.value: PriorityLevel.SHIPPED,
    OrderStatus.DELIVERY_ISSUE.value: PriorityLevel.SHIPPED,
    OrderStatus.FULFILLED.value: PriorityLevel.FULFILLED,
    OrderStatus.DELIVERED.value: PriorityLevel.DELIVERED,
}

# Rank within the fulfilled bucket: shipped, then fulfilled, then delivered
_FULFILLED_RANK = {
    OrderStatus.SHIPPED.value: 1,
    OrderStatus.FULFILLED.value: 2,
    OrderStatus.DELIVERED.value: 3,
}

# Carrier service-level tokens and names shown to operators as "Delivery"
_DELIVERY_PREFIXES = ("rate_", "shr_")
_DELIVERY_FRAGMENTS = ("ground", "usps", "advantage")


def _field(order, name: str):
    if isinstance(order, Mapping):
        return order.get(name)
    return getattr(order, name, None)


def _as_datetime(value) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


def age_in_days(order_date, now: datetime) -> int:
    """Whole days elapsed since ``order_date`` (truncated toward zero)."""
    placed = _as_datetime(order_date)
    if placed is None:
        return 0
    elapsed = _as_datetime(now) - placed
    return int(elapsed.total_seconds() / 86_400)


def is_pickup(order) -> bool:
    return _field(order, "shipping_method") == PICKUP and _field(order, "order_status") != OrderStatus.FULFILLED.value


def is_priority(order, now: datetime) -> bool:
    if _field(order, "order_status") != OrderStatus.PENDING.value:
        return False
    method = _field(order, "shipping_method")
    if method in EXPEDITED_METHODS:
        return True
    return method in STANDARD_METHODS and age_in_days(_field(order, "order_date"), now) > PRIORITY_AGE_DAYS


def classify(order, now: datetime) -> set[OrderFilter]:
    """Every filter bucket the order belongs to, ``ALL`` included."""
    status = _field(order, "order_status")
    buckets = {OrderFilter.ALL}
    if is_pickup(order):
        buckets.add(OrderFilter.PICKUP)
    if is_priority(order, now):
        buckets.add(OrderFilter.PRIORITY)
    if status == OrderStatus.PENDING.value:
        buckets.add(OrderFilter.PENDING)
        if _field(order, "shipping_method") != PICKUP:
            buckets.add(OrderFilter.DELIVERIES)
    if status in _COMPLETED_STATUSES:
        buckets.add(OrderFilter.FULFILLED)
    return buckets


def matches(order, order_filter: OrderFilter, now: datetime) -> bool:
    return order_filter in classify(order, now)


def filter_orders(orders: Iterable, order_filter: OrderFilter | None, now: datetime) -> list:
    if order_filter is None or order_filter == OrderFilter.ALL:
        return list(orders)
    return [order for order in orders if matches(order, order_filter, now)]


def count_by_filter(orders: Iterable, now: datetime) -> dict[str, int]:
    """Independent tallies per bucket; they do not sum to the order count."""
    counts = {f.value: 0 for f in OrderFilter}
    for order in orders:
        for bucket in classify(order, now):
            counts[bucket.value] += 1
    return counts


def priority_rank(order, now: datetime) -> PriorityLevel:
    status = _field(order, "order_status")
    if is_pickup(order) and status in (OrderStatus.PENDING.value, OrderStatus.PICKUP.value):
        return PriorityLevel.PICKUP
    if status == OrderStatus.PENDING.value:
        if is_priority(order, now) and _field(order, "shipping_method") in STANDARD_METHODS:
            return PriorityLevel.URGENT
        return _METHOD_LEVELS.get(_field(order, "shipping_method"), PriorityLevel.STANDARD)
    return _STATUS_LEVELS.get(status, PriorityLevel.STANDARD)


def _timestamp(order) -> float:
    placed = _as_datetime(_field(order, "order_date"))
    return placed.timestamp() if placed else 0.0


def sort_by_priority(orders: Iterable, active_filter: OrderFilter | None, now: datetime, query: str = "") -> list:
    """Order the work queue for the active filter.

    Left in fetch order when a search query is active (relevance wins) or
    when no filter is selected.
    """
    orders = list(orders)
    if (query or "").strip() or active_filter is None:
        return orders

    if active_filter == OrderFilter.FULFILLED:

        def fulfilled_key(order):
            status = _field(order, "order_status")
            rank = _FULFILLED_RANK.get(status, len(_FULFILLED_RANK) + 1)
            # Shipped orders newest first, the rest oldest first
            stamp = -_timestamp(order) if status == OrderStatus.SHIPPED.value else _timestamp(order)
            return (rank, stamp)

        return sorted(orders, key=fulfilled_key)

    return sorted(orders, key=lambda order: (priority_rank(order, now), _timestamp(order)))


def display_shipping_method(method: str | None) -> str:
    """Operator-facing label for a shipping method.

    Standard, ground and USPS services and carrier rate ids all read as
    "Delivery". Anything else, Pickup included, keeps its text with the
    first letter capitalized.
    """
    if not method:
        return ""
    lowered = method.lower()
    if (
        lowered == "standard"
        or lowered.startswith(_DELIVERY_PREFIXES)
        or any(fragment in lowered for fragment in _DELIVERY_FRAGMENTS)
    ):
        return "Delivery"
    return method[:1].upper() + method[1:]
