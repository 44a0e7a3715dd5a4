"""Shipment aggregate: one label purchase and its tracking lifecycle.

A shipment is created when a label is bought for an order and is then
updated, for as long as the parcel is moving, by carrier tracking events.
``status_history`` and ``webhook_events`` are audit logs: entries are only
ever appended, in arrival order, never rewritten or removed.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from operations.domain import operations
from operations.shipment.events import ShipmentCreated, TrackingUpdateRecorded


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class TransactionStatus(Enum):
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    QUEUED = "QUEUED"
    WAITING = "WAITING"
    REFUNDED = "REFUNDED"
    REFUNDPENDING = "REFUNDPENDING"


class DistanceUnit(Enum):
    INCH = "in"
    CENTIMETER = "cm"


class MassUnit(Enum):
    POUND = "lb"
    KILOGRAM = "kg"


DEFAULT_TRACKING_STATUS = "pre_transit"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@operations.value_object(part_of="Shipment")
class PostalAddress:
    """Carrier-formatted postal address."""

    name = String(max_length=200, sanitize=False)
    street1 = String(required=True, max_length=200, sanitize=False)
    street2 = String(max_length=200, sanitize=False)
    city = String(required=True, max_length=100, sanitize=False)
    state = String(required=True, max_length=50, sanitize=False)
    zip = String(required=True, max_length=20, sanitize=False)
    country = String(default="US", max_length=2, sanitize=False)
    phone = String(max_length=30, sanitize=False)
    email = String(max_length=254, sanitize=False)

    def to_carrier(self) -> dict:
        return {
            "name": self.name or "",
            "street1": self.street1,
            "street2": self.street2 or "",
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
            "country": self.country or "US",
            "phone": self.phone or "",
            "email": self.email or "",
        }


@operations.value_object(part_of="Shipment")
class Parcel:
    """Package dimensions and weight. Units travel with the values."""

    length = Float(required=True)
    width = Float(required=True)
    height = Float(required=True)
    distance_unit = String(required=True, choices=DistanceUnit, default=DistanceUnit.INCH.value)
    weight = Float(required=True)
    mass_unit = String(required=True, choices=MassUnit, default=MassUnit.POUND.value)

    @invariant.post
    def measurements_must_be_positive(self):
        for name in ("length", "width", "height", "weight"):
            value = getattr(self, name)
            if value is None or value <= 0:
                raise ValidationError({name: [f"{name.capitalize()} must be greater than 0"]})

    def to_carrier(self) -> dict:
        return {
            "length": str(self.length),
            "width": str(self.width),
            "height": str(self.height),
            "distance_unit": self.distance_unit,
            "weight": str(self.weight),
            "mass_unit": self.mass_unit,
        }


@operations.value_object(part_of="Shipment")
class CarrierService:
    """The carrier rate the label was bought at."""

    carrier_account = String(max_length=100)
    servicelevel_token = String(max_length=100)
    servicelevel_name = String(max_length=200)
    test = Boolean(default=False)


@operations.value_object(part_of="Shipment")
class Transaction:
    """The carrier's label purchase."""

    carrier_transaction_id = String(max_length=100)
    status = String(choices=TransactionStatus, default=TransactionStatus.SUCCESS.value)
    tracking_number = String(max_length=100)
    tracking_url = String(max_length=1000, sanitize=False)
    tracking_status = String(max_length=50, default=DEFAULT_TRACKING_STATUS)
    label_url = String(max_length=1000, sanitize=False)
    rate_amount = Float()
    rate_currency = String(max_length=3)
    rate_provider = String(max_length=100)


@operations.value_object(part_of="Shipment")
class TrackingStatus:
    """Latest carrier-reported tracking state."""

    status = String(max_length=50, sanitize=False)
    status_details = String(max_length=1000, sanitize=False)
    last_updated = DateTime()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@operations.entity(part_of="Shipment")
class StatusEntry:
    """One line of the shipment's status history."""

    sequence = Integer(required=True, min_value=0)
    status = String(required=True, max_length=50)
    message = String(max_length=1000, sanitize=False)
    date = DateTime()


@operations.entity(part_of="Shipment")
class WebhookEventEntry:
    """A raw carrier event as received."""

    sequence = Integer(required=True, min_value=0)
    event = String(required=True, max_length=100)
    data = Text(sanitize=False)  # JSON
    timestamp = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@operations.aggregate
class Shipment:
    order_id = Identifier(required=True)
    address_from = ValueObject(PostalAddress)
    address_to = ValueObject(PostalAddress)
    parcel = ValueObject(Parcel)
    service = ValueObject(CarrierService)
    transaction = ValueObject(Transaction)
    tracking_number = String(max_length=100)
    tracking_status = ValueObject(TrackingStatus)
    status_history = HasMany(StatusEntry)
    webhook_events = HasMany(WebhookEventEntry)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        order_id: str,
        address_from: PostalAddress,
        address_to: PostalAddress,
        parcel: Parcel,
        service: CarrierService,
        transaction: Transaction,
    ):
        """Record a purchased label. History starts with a ``created`` entry."""
        now = datetime.now(UTC)
        shipment = cls(
            order_id=order_id,
            address_from=address_from,
            address_to=address_to,
            parcel=parcel,
            service=service,
            transaction=transaction,
            tracking_number=transaction.tracking_number,
            created_at=now,
            updated_at=now,
        )
        shipment.add_status_history(
            StatusEntry(sequence=0, status="created", message="Shipping label created", date=now)
        )
        shipment.raise_(
            ShipmentCreated(
                shipment_id=str(shipment.id),
                order_id=order_id,
                tracking_number=transaction.tracking_number,
                transaction_status=transaction.status,
                test=bool(service.test),
                created_at=now,
            )
        )
        return shipment

    # -------------------------------------------------------------------
    # Audit trail views
    # -------------------------------------------------------------------
    def history(self) -> list[StatusEntry]:
        """Status history in arrival order."""
        return sorted(self.status_history or [], key=lambda entry: entry.sequence)

    def events_log(self) -> list[WebhookEventEntry]:
        """Raw carrier events in arrival order."""
        return sorted(self.webhook_events or [], key=lambda entry: entry.sequence)

    @property
    def is_test(self) -> bool:
        return bool(self.service and self.service.test)

    # -------------------------------------------------------------------
    # Tracking
    # -------------------------------------------------------------------
    def record_tracking_update(
        self,
        status: str,
        status_details: str | None,
        status_date: datetime | None,
        event: str,
        payload: dict,
        received_at: datetime | None = None,
    ) -> None:
        """Append a carrier tracking event to the audit trail.

        ``status`` is the raw carrier value (e.g. ``DELIVERED``). The
        transaction keeps it verbatim; the history stores it lower-cased.
        """
        if not status:
            raise ValidationError({"status": ["Tracking status is required"]})

        now = received_at or datetime.now(UTC)
        normalized = status.lower()

        self.tracking_status = TrackingStatus(
            status=normalized,
            status_details=status_details,
            last_updated=now,
        )
        self.add_status_history(
            StatusEntry(
                sequence=len(self.status_history or []),
                status=normalized,
                message=status_details,
                date=status_date or now,
            )
        )
        self.add_webhook_events(
            WebhookEventEntry(
                sequence=len(self.webhook_events or []),
                event=event,
                data=json.dumps(payload, default=str),
                timestamp=now,
            )
        )

        current = self.transaction
        self.transaction = Transaction(
            carrier_transaction_id=current.carrier_transaction_id if current else None,
            status=current.status if current else TransactionStatus.SUCCESS.value,
            tracking_number=current.tracking_number if current else self.tracking_number,
            tracking_url=current.tracking_url if current else None,
            tracking_status=status,
            label_url=current.label_url if current else None,
            rate_amount=current.rate_amount if current else None,
            rate_currency=current.rate_currency if current else None,
            rate_provider=current.rate_provider if current else None,
        )
        self.updated_at = now

        self.raise_(
            TrackingUpdateRecorded(
                shipment_id=str(self.id),
                order_id=str(self.order_id),
                tracking_number=self.tracking_number,
                status=normalized,
                history_length=len(self.status_history),
                recorded_at=now,
            )
        )
