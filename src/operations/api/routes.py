"""FastAPI routes for the operations domain."""

import json
from datetime import UTC, datetime

import structlog
from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from protean.utils.globals import current_domain

from operations.api.schemas import (
    CustomerIdResponse,
    CustomerSummary,
    OrderIdResponse,
    OrderResponse,
    PlaceOrderRequest,
    RegisterCustomerRequest,
    ShipmentResponse,
    ShipmentResultResponse,
    StatusEntryResponse,
    StatusResponse,
    UpdatedCountResponse,
    UpdateOrderStatusesRequest,
)
from operations.customer.customer import Customer
from operations.customer.registration import RegisterCustomer
from operations.domain import operations
from operations.order.filters import OrderFilter, display_shipping_method
from operations.order.listing import fetch_order_records, list_orders, order_counts
from operations.order.placement import PlaceOrder
from operations.order.status import UpdateOrderStatuses
from operations.search.relevance import search_customers
from operations.shipment.creation import ShipmentCreationService, ShipmentRequestError
from operations.shipment.reconciliation import reconcile_in_background
from operations.shipment.shipment import Shipment

logger = structlog.get_logger(__name__)


def _order_response(record: dict) -> OrderResponse:
    return OrderResponse(**record, display_shipping_method=display_shipping_method(record["shipping_method"]))


def _parse_filter(value: str | None) -> OrderFilter | None:
    if not value:
        return None
    try:
        return OrderFilter(value.lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown order filter: {value}") from None


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(body: PlaceOrderRequest) -> OrderIdResponse:
    """Record an order completed at checkout."""
    command = PlaceOrder(
        customer_id=body.customer_id,
        items=json.dumps([item.model_dump() for item in body.items]),
        shipping_method=body.shipping_method,
        payment_method=body.payment_method,
        shipping_address=body.shipping_address,
        billing_address=body.billing_address,
        order_status=body.order_status,
        is_test_order=body.is_test_order,
    )
    result = current_domain.process(command, asynchronous=False)
    return OrderIdResponse(order_id=result)


@order_router.get("", response_model=list[OrderResponse])
async def get_orders(
    active_filter: str | None = Query(default=None, alias="filter"),
    q: str = "",
) -> list[OrderResponse]:
    """Orders for the dashboard: search, then filter, then priority order."""
    records = list_orders(_parse_filter(active_filter), q)
    return [_order_response(record) for record in records]


@order_router.get("/counts")
async def get_order_counts() -> dict[str, int]:
    """How many orders fall into each filter bucket."""
    return order_counts()


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    records = fetch_order_records([order_id])
    if not records:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    return _order_response(records[0])


@order_router.put("", response_model=UpdatedCountResponse)
async def update_order_statuses(body: UpdateOrderStatusesRequest):
    """Move every listed order to ``order_status``, or none of them."""
    if not body.order_ids or not body.order_status:
        return JSONResponse(status_code=400, content={"error": "orderIds and order_status are required"})

    command = UpdateOrderStatuses(
        order_ids=json.dumps(body.order_ids),
        order_status=body.order_status,
    )
    modified = current_domain.process(command, asynchronous=False)
    return UpdatedCountResponse(status="updated", modified_count=modified)


# ---------------------------------------------------------------------------
# Customer Router
# ---------------------------------------------------------------------------
customer_router = APIRouter(prefix="/customers", tags=["customers"])


@customer_router.post("", status_code=201, response_model=CustomerIdResponse)
async def register_customer(body: RegisterCustomerRequest) -> CustomerIdResponse:
    command = RegisterCustomer(
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        phone_number=body.phone_number,
    )
    result = current_domain.process(command, asynchronous=False)
    return CustomerIdResponse(customer_id=result)


@customer_router.get("", response_model=list[CustomerSummary])
async def get_customers(q: str = "") -> list[CustomerSummary]:
    """Customers, ranked by relevance when ``q`` is given."""
    customers = current_domain.repository_for(Customer)._dao.query.limit(None).all().items
    return [
        CustomerSummary(
            id=str(c.id),
            first_name=c.first_name,
            last_name=c.last_name,
            email=c.email,
            phone_number=c.phone_number,
        )
        for c in search_customers(customers, q)
    ]


# ---------------------------------------------------------------------------
# Shipping Router
# ---------------------------------------------------------------------------
shipping_router = APIRouter(prefix="/shipping", tags=["shipping"])


@shipping_router.post("", status_code=201, response_model=list[ShipmentResultResponse])
async def create_shipments(request: Request):
    """Buy labels for the selected orders, one per order."""
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Request body must be JSON"})
    if not isinstance(body, dict):
        return JSONResponse(status_code=400, content={"error": "Request body must be an object"})

    service = ShipmentCreationService()
    try:
        results = await service.create_shipments(
            body.get("order_ids"),
            body.get("package_details"),
            test_mode=bool(body.get("test_mode", False)),
        )
    except ShipmentRequestError as exc:
        logger.warning("Shipment request rejected", error=exc.error, missing_ids=exc.missing_ids)
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())
    except Exception as exc:
        logger.error("Shipment creation failed", error=str(exc), exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(exc) or "Shipment creation failed"})
    return results


@shipping_router.post("/webhook", response_model=StatusResponse)
async def carrier_webhook(request: Request, background_tasks: BackgroundTasks):
    """Acknowledge a carrier event at once; reconcile it after responding."""
    try:
        raw = await request.body()
    except Exception as exc:
        logger.warning("Carrier webhook body unreadable", error=str(exc))
        return JSONResponse(status_code=400, content={"error": "Unable to read request body"})

    try:
        payload = json.loads(raw)
    except ValueError:
        payload = {"raw": raw.decode("utf-8", errors="replace")}
    if not isinstance(payload, dict):
        payload = {"raw": payload}

    logger.info("Carrier webhook received", event_type=payload.get("event"), test=bool(payload.get("test")))
    background_tasks.add_task(reconcile_in_background, payload, operations, datetime.now(UTC))
    return StatusResponse(status="received")


@shipping_router.get("/{order_id}", response_model=list[ShipmentResponse])
async def get_shipments(order_id: str) -> list[ShipmentResponse]:
    """Shipments bought for an order, with their status history."""
    shipments = current_domain.repository_for(Shipment)._dao.query.filter(order_id=order_id).limit(None).all().items
    return [
        ShipmentResponse(
            id=str(s.id),
            order_id=str(s.order_id),
            tracking_number=s.tracking_number,
            tracking_status=s.transaction.tracking_status if s.transaction else None,
            transaction_status=s.transaction.status if s.transaction else None,
            label_url=s.transaction.label_url if s.transaction else None,
            test=s.is_test,
            status_history=[
                StatusEntryResponse(status=entry.status, message=entry.message, date=entry.date)
                for entry in s.history()
            ],
            webhook_event_count=len(s.webhook_events or []),
        )
        for s in shipments
    ]
