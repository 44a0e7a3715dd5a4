"""Shipment creation: buy carrier labels for a batch of orders.

The whole batch is validated before the carrier is called: array shapes,
order existence, package measurements and destination addresses. Labels
are then bought concurrently, one carrier call per order. Each purchase
is persisted as soon as the carrier answers, before the batch returns.

A carrier failure fails the whole request; there is no partial-success
response. Shipments already recorded for other orders in the batch stay.
"""

import asyncio
import json

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from operations.carrier import get_carrier
from operations.carrier.port import CarrierPort
from operations.order.listing import load_customers
from operations.order.order import Order
from operations.order.status import LinkShipment
from operations.shipment.address import destination_address, studio_address
from operations.shipment.recording import RecordShipment
from operations.shipment.shipment import DEFAULT_TRACKING_STATUS, Parcel

logger = structlog.get_logger(__name__)


class ShipmentRequestError(Exception):
    """The batch was rejected before any label was bought."""

    def __init__(self, error: str, missing_ids: list[str] | None = None, status_code: int = 400):
        super().__init__(error)
        self.error = error
        self.missing_ids = missing_ids
        self.status_code = status_code

    def to_response(self) -> dict:
        body = {"error": self.error}
        if self.missing_ids is not None:
            body["missingIds"] = self.missing_ids
        return body


def _first_message(exc: ValidationError) -> str:
    for messages in (exc.messages or {}).values():
        if messages:
            return messages[0] if isinstance(messages, list) else str(messages)
    return str(exc)


def build_parcel(details: dict) -> Parcel:
    """Parcel from a package draft, nested ``dimensions`` or flat fields."""
    if not isinstance(details, dict):
        raise ShipmentRequestError("Package details must be an object")

    dimensions = details.get("dimensions") or details
    try:
        return Parcel(
            length=float(dimensions.get("length") or 0),
            width=float(dimensions.get("width") or 0),
            height=float(dimensions.get("height") or 0),
            distance_unit=details.get("distance_unit") or "in",
            weight=float(details.get("weight") or 0),
            mass_unit=details.get("mass_unit") or "lb",
        )
    except (TypeError, ValueError):
        raise ShipmentRequestError("Package dimensions and weight must be numbers") from None
    except ValidationError as exc:
        raise ShipmentRequestError(f"Invalid package details: {_first_message(exc)}") from None


def _tracking_status(response: dict) -> str:
    status = response.get("tracking_status") or (response.get("transaction") or {}).get("tracking_status")
    if isinstance(status, dict):
        status = status.get("status")
    return (status or DEFAULT_TRACKING_STATUS).lower()


class ShipmentCreationService:
    def __init__(self, carrier: CarrierPort | None = None):
        self.carrier = carrier or get_carrier()

    async def create_shipments(self, order_ids, package_details, test_mode: bool = False) -> list[dict]:
        plans = self._plan(order_ids, package_details)
        logger.info("Purchasing shipping labels", order_count=len(plans), test_mode=test_mode)

        # Fails on the first carrier error; completed purchases stay recorded
        return list(await asyncio.gather(*(self._purchase(plan, test_mode) for plan in plans)))

    def _plan(self, order_ids, package_details) -> list[dict]:
        if not isinstance(order_ids, list) or not isinstance(package_details, list):
            raise ShipmentRequestError("order_ids and package_details must be arrays")
        if len(order_ids) != len(package_details):
            raise ShipmentRequestError("order_ids and package_details must be the same length")
        if not order_ids:
            raise ShipmentRequestError("No orders selected")

        order_ids = [str(oid) for oid in order_ids]
        orders = current_domain.repository_for(Order)._dao.query.filter(id__in=list(set(order_ids))).limit(None).all().items
        by_id = {str(order.id): order for order in orders}
        missing = [oid for oid in dict.fromkeys(order_ids) if oid not in by_id]
        if missing:
            raise ShipmentRequestError("Some orders were not found", missing_ids=missing)

        customers = load_customers(order.customer_id for order in orders)
        sender = studio_address()

        plans = []
        for order_id, details in zip(order_ids, package_details, strict=True):
            order = by_id[order_id]
            if order.is_pickup:
                raise ShipmentRequestError(f"Order {order_id} is a pickup order and cannot be shipped")

            parcel = build_parcel(details)
            try:
                recipient = destination_address(order.shipping_address, customers.get(str(order.customer_id)))
            except ValidationError as exc:
                raise ShipmentRequestError(_first_message(exc)) from None

            plans.append(
                {
                    "order": order,
                    "address_from": sender,
                    "address_to": recipient,
                    "parcel": parcel,
                    "servicelevel_token": details.get("shippingService") or order.shipping_method,
                    "carrier_account": details.get("carrier_account"),
                }
            )
        return plans

    async def _purchase(self, plan: dict, test_mode: bool) -> dict:
        order = plan["order"]
        order_id = str(order.id)
        response = await self.carrier.purchase_label(
            address_from=plan["address_from"].to_carrier(),
            address_to=plan["address_to"].to_carrier(),
            parcel=plan["parcel"].to_carrier(),
            carrier_account=plan["carrier_account"],
            servicelevel_token=plan["servicelevel_token"],
            test=test_mode,
        )

        transaction = response.get("transaction") or {}
        carrier_shipment = response.get("shipment") or {}
        tracking_status = _tracking_status(response)
        response = {**response, "tracking_status": tracking_status}

        shipment_id = current_domain.process(
            RecordShipment(
                order_id=order_id,
                address_from=json.dumps(plan["address_from"].to_dict()),
                address_to=json.dumps(plan["address_to"].to_dict()),
                parcel=json.dumps(plan["parcel"].to_dict()),
                carrier_response=json.dumps(response, default=str),
            ),
            asynchronous=False,
        )
        current_domain.process(
            LinkShipment(order_id=order_id, shipping_id=shipment_id),
            asynchronous=False,
        )

        logger.info(
            "Shipping label purchased",
            order_id=order_id,
            shipment_id=shipment_id,
            tracking_number=transaction.get("tracking_number"),
            test=bool(carrier_shipment.get("test")),
        )
        return {
            "order_id": order_id,
            "shipment_id": shipment_id,
            "label_url": transaction.get("label_url"),
            "tracking_number": transaction.get("tracking_number"),
            "tracking_url_provider": transaction.get("tracking_url_provider"),
            "tracking_status": tracking_status,
            "rate": transaction.get("rate"),
            "test": bool(carrier_shipment.get("test")),
            "status": "success",
        }
