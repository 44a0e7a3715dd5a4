"""Rate selection among the carrier's quotes for a shipment."""

from operations.carrier.port import CarrierError

PREFERRED_PROVIDER = "USPS"
PREFERRED_SERVICE = "usps_ground_advantage"


def _amount(rate: dict) -> float:
    try:
        return float(rate.get("amount") or 0)
    except (TypeError, ValueError):
        return float("inf")


def _token(rate: dict) -> str:
    return ((rate.get("servicelevel") or {}).get("token") or "").lower()


def select_rate(rates: list[dict], servicelevel_token: str | None = None, carrier_account: str | None = None) -> dict:
    """Pick the rate to buy.

    An explicitly requested service level (and carrier account) wins.
    Otherwise the cheapest USPS Ground Advantage, then the cheapest USPS
    rate, then the cheapest rate from anyone.
    """
    if not rates:
        raise CarrierError("No shipping rates returned. Check the address and package details.")

    if servicelevel_token:
        requested = [
            r
            for r in rates
            if _token(r) == servicelevel_token.lower()
            and (not carrier_account or r.get("carrier_account") == carrier_account)
        ]
        if requested:
            return min(requested, key=_amount)

    usps = [r for r in rates if r.get("provider") == PREFERRED_PROVIDER]
    ground_advantage = [r for r in usps if _token(r) == PREFERRED_SERVICE]
    for candidates in (ground_advantage, usps, rates):
        if candidates:
            return min(candidates, key=_amount)
    raise CarrierError("No shipping rates available")
