"""Carrier webhook reconciliation.

Tracking events are folded into the matching shipments' audit trails and,
where allowed, into the owning orders. Each matched shipment is handled on
its own: a failure on one is logged and the rest still run.

Test isolation: a shipment is a test shipment when its order is flagged
``is_test_order`` or its tracking number is one of the carrier's sandbox
numbers. Test shipments only move their order when the webhook itself is
flagged ``test``; their audit trail is updated either way.
"""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from operations.order.order import Order
from operations.order.status import ApplyTrackingUpdate
from operations.shipment.recording import RecordTrackingUpdate
from operations.shipment.shipment import Shipment

logger = structlog.get_logger(__name__)

TRACK_UPDATED = "track_updated"

# Acknowledged and logged, no state change
LOGGED_EVENTS = frozenset(
    {
        "transaction_created",
        "transaction_updated",
        "batch_created",
        "batch_purchased",
    }
)

SANDBOX_TRACKING_NUMBERS = frozenset(
    {
        "SHIPPO_PRE_TRANSIT",
        "SHIPPO_TRANSIT",
        "SHIPPO_DELIVERED",
        "SHIPPO_RETURNED",
        "SHIPPO_FAILURE",
        "SHIPPO_UNKNOWN",
        "SHIPPO_INVALID",
    }
)


@dataclass
class ReconciliationReport:
    tracking_number: str | None = None
    matched: int = 0
    audited: int = 0
    orders_updated: int = 0
    skipped_test: int = 0
    skipped_pickup: int = 0
    failed: list[str] = field(default_factory=list)


def _parse_date(value) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unparseable carrier status date", status_date=value)
        return None


def is_test_shipment(order: Order, tracking_number: str) -> bool:
    return bool(order.is_test_order) or tracking_number in SANDBOX_TRACKING_NUMBERS


def process_carrier_event(payload: dict, received_at: datetime | None = None) -> ReconciliationReport | None:
    """Dispatch a carrier webhook envelope by its ``event`` type."""
    event = payload.get("event")
    if event == TRACK_UPDATED:
        return reconcile_tracking_update(payload, received_at)
    if event in LOGGED_EVENTS:
        logger.info("Carrier event received", event_type=event, test=bool(payload.get("test")))
        return None
    logger.info("Unhandled carrier event", event_type=event)
    return None


def reconcile_tracking_update(payload: dict, received_at: datetime | None = None) -> ReconciliationReport:
    received_at = received_at or datetime.now(UTC)
    data = payload.get("data") or {}
    tracking_number = data.get("tracking_number")
    tracking_status = data.get("tracking_status") or {}
    report = ReconciliationReport(tracking_number=tracking_number)

    if not tracking_number or not tracking_status or not tracking_status.get("status"):
        logger.warning(
            "Tracking update missing tracking number or status",
            tracking_number=tracking_number,
        )
        return report

    shipments = current_domain.repository_for(Shipment)._dao.query.filter(tracking_number=tracking_number).limit(None).all().items
    report.matched = len(shipments)
    if not shipments:
        logger.info("No shipment found for tracking number", tracking_number=tracking_number)
        return report

    for shipment in shipments:
        try:
            _reconcile_shipment(shipment, payload, tracking_number, tracking_status, received_at, report)
        except Exception as exc:
            report.failed.append(str(shipment.id))
            logger.error(
                "Tracking reconciliation failed for shipment",
                shipment_id=str(shipment.id),
                tracking_number=tracking_number,
                error=str(exc),
            )

    logger.info(
        "Tracking update reconciled",
        tracking_number=tracking_number,
        status=tracking_status.get("status"),
        matched=report.matched,
        orders_updated=report.orders_updated,
        skipped_test=report.skipped_test,
        failed=len(report.failed),
    )
    return report


def _reconcile_shipment(
    shipment: Shipment,
    payload: dict,
    tracking_number: str,
    tracking_status: dict,
    received_at: datetime,
    report: ReconciliationReport,
) -> None:
    status = tracking_status["status"]
    status_date = _parse_date(tracking_status.get("status_date"))

    # Audit trail first, regardless of test isolation
    current_domain.process(
        RecordTrackingUpdate(
            shipment_id=str(shipment.id),
            event=TRACK_UPDATED,
            status=status,
            status_details=tracking_status.get("status_details"),
            status_date=status_date,
            event_data=json.dumps(tracking_status, default=str),
            received_at=received_at,
        ),
        asynchronous=False,
    )
    report.audited += 1

    try:
        order = current_domain.repository_for(Order).get(str(shipment.order_id))
    except ObjectNotFoundError:
        logger.warning(
            "Order for shipment not found",
            shipment_id=str(shipment.id),
            order_id=str(shipment.order_id),
        )
        return

    if order.is_pickup:
        report.skipped_pickup += 1
        logger.info("Pickup order left untouched by tracking update", order_id=str(order.id))
        return

    if is_test_shipment(order, tracking_number) and not payload.get("test"):
        report.skipped_test += 1
        logger.info(
            "Test shipment: production webhook does not update order",
            order_id=str(order.id),
            tracking_number=tracking_number,
        )
        return

    current_domain.process(
        ApplyTrackingUpdate(order_id=str(order.id), status=status, status_date=status_date),
        asynchronous=False,
    )
    report.orders_updated += 1


def reconcile_in_background(payload: dict, domain, received_at: datetime | None = None) -> None:
    """Background task body for the webhook route.

    Runs after the HTTP acknowledgment has been sent, so it pushes its own
    domain context and never lets an exception escape.
    """
    try:
        with domain.domain_context():
            process_carrier_event(payload, received_at)
    except Exception as exc:
        logger.error(
            "Carrier webhook processing failed",
            event_type=payload.get("event"),
            error=str(exc),
            exc_info=True,
        )
