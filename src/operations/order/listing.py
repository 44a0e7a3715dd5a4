"""Order read side: fetch orders with their customers and run the
operator's search and filter over them."""

from datetime import UTC, datetime

from protean.utils.globals import current_domain

from operations.customer.customer import Customer
from operations.order.filters import OrderFilter, count_by_filter, filter_orders, sort_by_priority
from operations.order.order import Order
from operations.search.relevance import search_orders


def customer_summary(customer: Customer | None) -> dict | None:
    if customer is None:
        return None
    return {
        "id": str(customer.id),
        "first_name": customer.first_name,
        "last_name": customer.last_name,
        "email": customer.email,
        "phone_number": customer.phone_number,
    }


def order_record(order: Order, customer: Customer | None = None) -> dict:
    """Flatten an order with its customer embedded."""
    return {
        "id": str(order.id),
        "customer_id": str(order.customer_id),
        "customer": customer_summary(customer),
        "items": [
            {
                "kind": item.kind,
                "item_id": str(item.item_id),
                "name": item.name,
                "unit_price": item.unit_price,
            }
            for item in order.items or []
        ],
        "order_date": order.order_date,
        "total_amount": order.total_amount,
        "order_status": order.order_status,
        "shipping_method": order.shipping_method,
        "payment_method": order.payment_method,
        "shipping_address": order.shipping_address,
        "billing_address": order.billing_address,
        "shipping_id": str(order.shipping_id) if order.shipping_id else None,
        "is_test_order": bool(order.is_test_order),
        "tracking_status": order.tracking_status,
        "delivered_at": order.delivered_at,
    }


def load_customers(customer_ids) -> dict[str, Customer]:
    ids = sorted({str(cid) for cid in customer_ids if cid})
    if not ids:
        return {}
    customers = current_domain.repository_for(Customer)._dao.query.filter(id__in=ids).limit(None).all().items
    return {str(c.id): c for c in customers}


def fetch_order_records(order_ids=None) -> list[dict]:
    """Orders (all, or the given ids) with customers populated, in store order."""
    query = current_domain.repository_for(Order)._dao.query
    if order_ids is not None:
        query = query.filter(id__in=list(order_ids))
    orders = query.limit(None).all().items
    customers = load_customers(o.customer_id for o in orders)
    return [order_record(o, customers.get(str(o.customer_id))) for o in orders]


def list_orders(active_filter: OrderFilter | None = None, query: str = "", now: datetime | None = None) -> list[dict]:
    """Search first, then filter, then priority sort (skipped while searching)."""
    now = now or datetime.now(UTC)
    records = fetch_order_records()
    records = search_orders(records, query)
    records = filter_orders(records, active_filter, now)
    return sort_by_priority(records, active_filter, now, query)


def order_counts(now: datetime | None = None) -> dict[str, int]:
    return count_by_filter(fetch_order_records(), now or datetime.now(UTC))
