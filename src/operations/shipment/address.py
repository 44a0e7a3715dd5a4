"""Postal addresses for label purchase.

Orders keep their shipping address as a single free-text string; the
carrier needs it broken into fields. The studio's own address, used as
the sender on every label, comes from the environment.
"""

import os
import re

from protean.exceptions import ValidationError

from operations.shipment.shipment import PostalAddress

_SECONDARY_UNIT = re.compile(r"\b(apt|suite|ste|unit)\b|#", re.IGNORECASE)
_SEPARATORS = re.compile(r"[,\n]")

_REQUIRED_FIELDS = (
    ("street1", "street address"),
    ("city", "city"),
    ("state", "state"),
    ("zip", "ZIP code"),
)


class AddressError(ValidationError):
    """The shipping address cannot be turned into a carrier address."""


def parse_address(address: str | None) -> dict:
    """Split ``"street[, apt], city, STATE ZIP[, country]"`` into fields.

    Fields that cannot be found are left empty; country defaults to US.
    """
    result = {"street1": "", "street2": "", "city": "", "state": "", "zip": "", "country": "US"}
    parts = [part.strip() for part in _SEPARATORS.split(address or "") if part.strip()]
    if not parts:
        return result

    result["street1"] = parts[0]
    rest = parts[1:]
    if rest and _SECONDARY_UNIT.search(rest[0]):
        result["street2"] = rest.pop(0)

    if len(rest) == 1:
        tokens = rest[0].split()
        if len(tokens) > 2:
            result["city"] = " ".join(tokens[:-2])
            result["state"] = tokens[-2]
            result["zip"] = tokens[-1]
        else:
            result["city"] = rest[0]
        return result

    if len(rest) >= 2:
        result["city"] = rest[0]
        state_zip = rest[1].split()
        result["state"] = state_zip[0]
        remaining = rest[2:]
        if len(state_zip) > 1:
            result["zip"] = state_zip[1]
        elif remaining and any(char.isdigit() for char in remaining[0]):
            result["zip"] = remaining.pop(0)
        if remaining:
            result["country"] = remaining[0]
    return result


def destination_address(address: str | None, customer=None) -> PostalAddress:
    """Carrier address for an order, or ``AddressError`` naming what is missing."""
    fields = parse_address(address)
    missing = [label for key, label in _REQUIRED_FIELDS if not fields[key]]
    if missing:
        raise AddressError(
            {
                "shipping_address": [
                    f"Cannot create shipping label: Missing required address fields ({', '.join(missing)})"
                ]
            }
        )

    name = ""
    phone = ""
    email = ""
    if customer is not None:
        name = f"{customer.first_name or ''} {customer.last_name or ''}".strip()
        phone = str(customer.phone_number or "")
        email = customer.email or ""

    return PostalAddress(name=name, phone=phone, email=email, **fields)


def studio_address() -> PostalAddress:
    """Sender address printed on every label."""
    return PostalAddress(
        name=os.environ.get("STUDIO_NAME", "The Studio"),
        street1=os.environ.get("STUDIO_STREET1", "123 Main St"),
        street2=os.environ.get("STUDIO_STREET2", ""),
        city=os.environ.get("STUDIO_CITY", "Sacramento"),
        state=os.environ.get("STUDIO_STATE", "CA"),
        zip=os.environ.get("STUDIO_ZIP", "95814"),
        country=os.environ.get("STUDIO_COUNTRY", "US"),
        phone=os.environ.get("STUDIO_PHONE", ""),
        email=os.environ.get("STUDIO_EMAIL", ""),
    )
