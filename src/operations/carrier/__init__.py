"""Carrier adapter abstraction: pluggable label provider integration."""

import os

_carrier_instance = None


def get_carrier():
    """Return the configured carrier adapter (singleton).

    Uses FakeCarrier by default. In production, set CARRIER_ADAPTER=shippo
    and SHIPPO_API_KEY.
    """
    global _carrier_instance
    if _carrier_instance is None:
        adapter = os.environ.get("CARRIER_ADAPTER", "fake")
        if adapter == "fake":
            from operations.carrier.fake_adapter import FakeCarrier

            _carrier_instance = FakeCarrier()
        elif adapter == "shippo":
            from operations.carrier.shippo_adapter import DEFAULT_BASE_URL, ShippoCarrier

            api_key = os.environ.get("SHIPPO_API_KEY")
            if not api_key:
                raise ValueError("SHIPPO_API_KEY must be set to use the Shippo carrier adapter")
            _carrier_instance = ShippoCarrier(
                api_key=api_key,
                base_url=os.environ.get("SHIPPO_API_URL", DEFAULT_BASE_URL),
            )
        else:
            raise ValueError(f"Unknown carrier adapter: {adapter}")
    return _carrier_instance


def set_carrier(carrier):
    """Install a specific carrier adapter (useful for testing)."""
    global _carrier_instance
    _carrier_instance = carrier


def reset_carrier():
    """Reset the carrier singleton (useful for testing)."""
    global _carrier_instance
    _carrier_instance = None
