"""Carrier port: abstract interface for shipping label providers.

All carrier adapters must implement this interface. The shipment creation
service programs against the port; adapters are swapped via configuration.
"""

from abc import ABC, abstractmethod


class CarrierError(Exception):
    """The carrier could not sell a label."""


class CarrierPort(ABC):
    """Abstract interface for carrier adapters."""

    @abstractmethod
    async def purchase_label(
        self,
        address_from: dict,
        address_to: dict,
        parcel: dict,
        carrier_account: str | None = None,
        servicelevel_token: str | None = None,
        test: bool = False,
    ) -> dict:
        """Buy a label for one parcel.

        Returns:
            dict with keys:
                transaction: {shippo_id, status, tracking_number,
                    tracking_url_provider, label_url, tracking_status,
                    rate: {amount, currency, provider}}
                shipment: {test, carrier_account, servicelevel_token,
                    servicelevel_name}

        Raises:
            CarrierError: the carrier refused or failed the purchase.
        """
        ...
