"""Typed records for data crossing the dashboard/API boundary.

Responses are validated into these models on receipt so the workflow
code never handles loosely-shaped dicts.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

OrderStatusValue = Literal[
    "pending",
    "pickup",
    "shipped",
    "in_transit",
    "delivered",
    "delivery_issue",
    "fulfilled",
]

PICKUP = "Pickup"


class CustomerSummary(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str
    phone_number: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class OrderRecord(BaseModel):
    id: str
    customer_id: str
    customer: CustomerSummary | None = None
    order_date: datetime
    total_amount: float
    order_status: OrderStatusValue
    shipping_method: str
    display_shipping_method: str = ""
    payment_method: str | None = None
    shipping_address: str | None = None
    billing_address: str | None = None
    shipping_id: str | None = None
    is_test_order: bool = False
    tracking_status: str | None = None
    delivered_at: datetime | None = None

    @property
    def is_pickup(self) -> bool:
        return self.shipping_method == PICKUP


class PackageDimensions(BaseModel):
    length: float | None = None
    width: float | None = None
    height: float | None = None


class PackageDetailDraft(BaseModel):
    """Physical package input collected for one order before label purchase."""

    model_config = ConfigDict(populate_by_name=True)

    weight: float | None = None
    dimensions: PackageDimensions = Field(default_factory=PackageDimensions)
    shipping_service: str = Field(default="", alias="shippingService")
    tracking_number: str = Field(default="", alias="trackingNumber")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class ShipmentRate(BaseModel):
    amount: str | float | None = None
    currency: str | None = None
    provider: str | None = None


class ShipmentResult(BaseModel):
    order_id: str
    shipment_id: str | None = None
    label_url: str | None = None
    tracking_number: str | None = None
    tracking_url_provider: str | None = None
    tracking_status: str = "pre_transit"
    rate: ShipmentRate | None = None
    test: bool = False
    status: str
