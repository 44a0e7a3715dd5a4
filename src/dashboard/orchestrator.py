"""Bulk action workflow for the order management dashboard.

The operator checks orders, then runs one of the bulk actions over the
selection: buy shipping labels, print receipts, export, or mark pickup
orders fulfilled. All workflow state lives in a single ``BulkActionState``
owned by the orchestrator; views read it, only the orchestrator writes it.

Label purchase is stepwise. The selection is snapshotted when the action
starts, one package form is shown per order in snapshot order, and the
batch is submitted after the last form. A successful batch clears the
selection; a failed one leaves it so the operator can retry.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import httpx
import structlog
from pydantic import ValidationError

from dashboard.client import ApiError, StudioApiClient
from dashboard.records import OrderRecord, PackageDetailDraft, ShipmentResult

logger = structlog.get_logger(__name__)

FULFILLED = "fulfilled"


@dataclass
class BulkActionState:
    """Everything the bulk workflow knows, in one place."""

    selected_orders: dict[str, OrderRecord] = field(default_factory=dict)  # insertion-ordered
    snapshot: list[OrderRecord] = field(default_factory=list)
    package_details: list[PackageDetailDraft] = field(default_factory=list)
    modified_details: dict[str, PackageDetailDraft] = field(default_factory=dict)
    current_package_index: int = 0
    is_package_modal_open: bool = False
    is_submitting: bool = False
    last_results: list[ShipmentResult] = field(default_factory=list)

    @property
    def selected_ids(self) -> list[str]:
        return list(self.selected_orders)

    @property
    def current_order(self) -> OrderRecord | None:
        if not self.snapshot:
            return None
        return self.snapshot[self.current_package_index]

    @property
    def current_draft(self) -> PackageDetailDraft | None:
        order = self.current_order
        if order is None:
            return None
        return self.modified_details.get(order.id) or self.package_details[self.current_package_index]

    @property
    def is_last_package(self) -> bool:
        return self.current_package_index >= len(self.snapshot) - 1


def _default_draft(order: OrderRecord) -> PackageDetailDraft:
    return PackageDetailDraft(shipping_service=order.shipping_method or "")


class BulkActionOrchestrator:
    def __init__(
        self,
        api: StudioApiClient,
        alert: Callable[[str], None] | None = None,
        generate_receipt: Callable[[OrderRecord], object] | None = None,
        export_orders: Callable[[list[OrderRecord]], object] | None = None,
        revalidate: Callable[[], Awaitable[None]] | None = None,
        test_mode: bool = False,
    ):
        self.api = api
        self.alert = alert or (lambda message: logger.warning("Dashboard alert", message=message))
        self.generate_receipt = generate_receipt
        self.export_orders = export_orders
        self.revalidate = revalidate
        self.test_mode = test_mode
        self.state = BulkActionState()

    # -------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------
    def toggle_selection(self, order: OrderRecord) -> None:
        if order.id in self.state.selected_orders:
            del self.state.selected_orders[order.id]
        else:
            self.state.selected_orders[order.id] = order

    def select_all(self, orders: list[OrderRecord]) -> None:
        self.state.selected_orders = {order.id: order for order in orders}

    def clear_selection(self) -> None:
        self.state.selected_orders = {}

    def is_selected(self, order_id: str) -> bool:
        return order_id in self.state.selected_orders

    # -------------------------------------------------------------------
    # Shipping labels
    # -------------------------------------------------------------------
    def handle_print_shipping_labels(self) -> None:
        """Start label purchase for the current selection."""
        orders = list(self.state.selected_orders.values())
        if not orders:
            self.alert("Select at least one order to print shipping labels")
            return

        self.state.snapshot = orders
        self.state.package_details = [_default_draft(order) for order in orders]
        self.state.modified_details = {}
        self.state.current_package_index = 0
        self.state.is_package_modal_open = True

    def update_draft(self, values: PackageDetailDraft | dict) -> None:
        """Keep unsaved edits to the form on screen."""
        order = self.state.current_order
        if order is None:
            return
        self.state.modified_details[order.id] = PackageDetailDraft.model_validate(values)

    def on_previous(self) -> None:
        self.state.current_package_index = max(self.state.current_package_index - 1, 0)

    def on_next(self) -> None:
        last = max(len(self.state.snapshot) - 1, 0)
        self.state.current_package_index = min(self.state.current_package_index + 1, last)

    def close_modal(self) -> None:
        """Abandon the batch. Labels already bought are not refunded."""
        self.state.is_package_modal_open = False
        self.state.snapshot = []
        self.state.package_details = []
        self.state.modified_details = {}
        self.state.current_package_index = 0

    async def handle_package_details_submit(self, values: PackageDetailDraft | dict) -> list[ShipmentResult] | None:
        """Save the current form; after the last order, submit the batch."""
        order = self.state.current_order
        if order is None:
            return None

        index = self.state.current_package_index
        self.state.package_details[index] = PackageDetailDraft.model_validate(values)
        self.state.modified_details.pop(order.id, None)

        if not self.state.is_last_package:
            self.state.current_package_index = index + 1
            return None

        self.state.is_package_modal_open = False
        return await self._finalize_labels()

    def batch_payload(self) -> list[dict]:
        """``{orderId, packageDetails}`` for every order in the snapshot."""
        return [
            {"orderId": order.id, "packageDetails": draft.to_payload()}
            for order, draft in zip(self.state.snapshot, self.state.package_details, strict=True)
        ]

    async def _finalize_labels(self) -> list[ShipmentResult] | None:
        batch = self.batch_payload()
        self.state.is_submitting = True
        try:
            results = await self.api.create_shipments(
                [entry["orderId"] for entry in batch],
                [entry["packageDetails"] for entry in batch],
                test_mode=self.test_mode,
            )
        except (ApiError, httpx.HTTPError, ValidationError) as exc:
            logger.error("Shipping label purchase failed", error=str(exc))
            self.alert(f"Failed to create shipping labels: {exc}")
            return None
        finally:
            self.state.is_submitting = False

        self.state.last_results = results
        self.clear_selection()
        self.state.snapshot = []
        self.state.package_details = []
        self.state.current_package_index = 0
        await self._revalidate()
        logger.info("Shipping labels created", order_count=len(results))
        return results

    # -------------------------------------------------------------------
    # Pickup fulfillment
    # -------------------------------------------------------------------
    async def handle_mark_as_fulfilled(self) -> bool:
        """Mark every selected order fulfilled; pickup orders only.

        A selection holding any delivery order is rejected whole and no
        order is touched. Delivery orders are closed by carrier tracking.
        """
        orders = list(self.state.selected_orders.values())
        if not orders:
            self.alert("Select at least one order to mark as fulfilled")
            return False

        delivery = [order for order in orders if not order.is_pickup]
        if delivery:
            self.alert("Only pickup orders can be marked as fulfilled. Deselect delivery orders and try again.")
            return False

        try:
            await self.api.update_order_statuses([order.id for order in orders], FULFILLED)
        except Exception as exc:
            logger.error("Marking orders fulfilled failed", order_ids=[o.id for o in orders], error=str(exc))
            self.alert(f"Failed to mark orders as fulfilled: {exc}")
            return False

        self.clear_selection()
        await self._revalidate()
        return True

    # -------------------------------------------------------------------
    # Receipts and export
    # -------------------------------------------------------------------
    def handle_print_receipts(self) -> list:
        orders = list(self.state.selected_orders.values())
        if not orders:
            self.alert("Select at least one order to print receipts")
            return []
        if self.generate_receipt is None:
            raise RuntimeError("No receipt generator configured")
        return [self.generate_receipt(order) for order in orders]

    def handle_export(self, orders: list[OrderRecord] | None = None):
        """Export the selection, or ``orders`` when nothing is selected."""
        if self.export_orders is None:
            raise RuntimeError("No exporter configured")
        selected = list(self.state.selected_orders.values())
        return self.export_orders(selected or list(orders or []))

    async def _revalidate(self) -> None:
        if self.revalidate is not None:
            await self.revalidate()
