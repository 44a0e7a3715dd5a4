"""HTTP client for the operations API, as used by the dashboard."""

import httpx
import structlog

from dashboard.records import CustomerSummary, OrderRecord, ShipmentResult

logger = structlog.get_logger(__name__)


class ApiError(Exception):
    """The operations API answered with an error."""

    def __init__(self, status_code: int, message: str, missing_ids: list[str] | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.missing_ids = missing_ids


def extract_error_detail(response: httpx.Response) -> str:
    """Extract a human-readable error message from an API error response.

    Handles ``{"error": "msg"}``, ``{"error": {"field": [...]}}``,
    ``{"detail": "msg"}`` and pydantic's ``{"detail": [{"loc", "msg"}]}``.
    """
    try:
        body = response.json()
    except ValueError:
        text = response.text or ""
        return text[:300] or "(empty response body)"

    if not isinstance(body, dict):
        return str(body)[:300]

    if "error" in body:
        error = body["error"]
        if isinstance(error, dict):
            return " | ".join(f"{k}: {v}" for k, v in error.items())
        return str(error)

    detail = body.get("detail")
    if isinstance(detail, list):
        parts = []
        for err in detail:
            loc = ".".join(str(p) for p in err.get("loc", []))
            msg = err.get("msg", str(err))
            parts.append(f"{loc}: {msg}" if loc else msg)
        return " | ".join(parts)
    if detail:
        return str(detail)

    return str(body)[:300]


def _missing_ids(response: httpx.Response) -> list[str] | None:
    try:
        body = response.json()
    except ValueError:
        return None
    return body.get("missingIds") if isinstance(body, dict) else None


class StudioApiClient:
    """Async client for the orders, customers and shipping endpoints."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def _request(self, method: str, url: str, **kwargs):
        response = await self.client.request(method, url, **kwargs)
        if response.is_error:
            message = extract_error_detail(response)
            missing_ids = _missing_ids(response)
            logger.warning("Operations API error", method=method, url=url, status=response.status_code, error=message)
            raise ApiError(response.status_code, message, missing_ids)
        return response.json()

    async def fetch_orders(self, active_filter: str | None = None, query: str = "") -> list[OrderRecord]:
        params = {}
        if active_filter:
            params["filter"] = active_filter
        if query:
            params["q"] = query
        data = await self._request("GET", "/orders", params=params)
        return [OrderRecord.model_validate(item) for item in data]

    async def fetch_counts(self) -> dict[str, int]:
        return await self._request("GET", "/orders/counts")

    async def search_customers(self, query: str = "") -> list[CustomerSummary]:
        data = await self._request("GET", "/customers", params={"q": query} if query else {})
        return [CustomerSummary.model_validate(item) for item in data]

    async def create_shipments(
        self, order_ids: list[str], package_details: list[dict], test_mode: bool = False
    ) -> list[ShipmentResult]:
        data = await self._request(
            "POST",
            "/shipping",
            json={"order_ids": order_ids, "package_details": package_details, "test_mode": test_mode},
        )
        return [ShipmentResult.model_validate(item) for item in data]

    async def update_order_statuses(self, order_ids: list[str], order_status: str) -> int:
        data = await self._request("PUT", "/orders", json={"orderIds": order_ids, "order_status": order_status})
        return data.get("modified_count", 0)

    async def close(self):
        await self.client.aclose()
