"""Pydantic API schemas for the operations domain.

These are the external API contracts, separate from domain commands.
The API layer translates between these schemas and domain commands.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class LineItemRequest(BaseModel):
    kind: str = "product"
    item_id: str
    name: str | None = None
    unit_price: float = Field(ge=0)


class PlaceOrderRequest(BaseModel):
    customer_id: str
    items: list[LineItemRequest]
    shipping_method: str
    payment_method: str | None = None
    shipping_address: str | None = None
    billing_address: str | None = None
    order_status: str | None = None
    is_test_order: bool = False


class UpdateOrderStatusesRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_ids: list[str] | None = Field(default=None, alias="orderIds")
    order_status: str | None = None


class RegisterCustomerRequest(BaseModel):
    first_name: str
    last_name: str
    email: str
    phone_number: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class OrderIdResponse(BaseModel):
    order_id: str


class CustomerIdResponse(BaseModel):
    customer_id: str


class StatusResponse(BaseModel):
    status: str


class UpdatedCountResponse(BaseModel):
    status: str
    modified_count: int


class CustomerSummary(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str
    phone_number: str | None = None


class LineItemResponse(BaseModel):
    kind: str
    item_id: str
    name: str | None = None
    unit_price: float


class OrderResponse(BaseModel):
    id: str
    customer_id: str
    customer: CustomerSummary | None = None
    items: list[LineItemResponse] = []
    order_date: datetime
    total_amount: float
    order_status: str
    shipping_method: str
    display_shipping_method: str = ""
    payment_method: str | None = None
    shipping_address: str | None = None
    billing_address: str | None = None
    shipping_id: str | None = None
    is_test_order: bool = False
    tracking_status: str | None = None
    delivered_at: datetime | None = None


class RateResponse(BaseModel):
    amount: str | float | None = None
    currency: str | None = None
    provider: str | None = None


class ShipmentResultResponse(BaseModel):
    order_id: str
    shipment_id: str
    label_url: str | None = None
    tracking_number: str | None = None
    tracking_url_provider: str | None = None
    tracking_status: str
    rate: RateResponse | None = None
    test: bool
    status: str


class StatusEntryResponse(BaseModel):
    status: str
    message: str | None = None
    date: datetime | None = None


class ShipmentResponse(BaseModel):
    id: str
    order_id: str
    tracking_number: str | None = None
    tracking_status: str | None = None
    transaction_status: str | None = None
    label_url: str | None = None
    test: bool = False
    status_history: list[StatusEntryResponse] = []
    webhook_event_count: int = 0
