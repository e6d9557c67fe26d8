"""
Delivery Order Tracker — the delivery partner's order lifecycle.

Ties together the repository (server calls), the order view state (what the
screens show) and the location tracker (position uploads):

    accept(id)   READY → OUT_FOR_DELIVERY, order becomes the assigned order,
                 tracking IDLE → TRACKING
    deliver(id)  OUT_FOR_DELIVERY → DELIVERED, assigned order cleared,
                 tracking → IDLE

Cash-on-delivery confirmation is local UI state. deliver() logs a warning
when a COD order is delivered without it but still sends the request.
"""
import logging
from typing import Optional

from domain.constants import TRACKED_STATUSES
from domain.state_machine import requires_cash_confirmation
from models import Order
from services.location_service import LocationTracker
from services.order_repository import DeliveryOrderRepository
from services.view_state import OrderViewState, ViewStateSynchronizer

logger = logging.getLogger(__name__)


class DeliveryOrderTracker:
    """Delivery partner workflow over an injected view state."""

    def __init__(
        self,
        repository: DeliveryOrderRepository,
        view_state: OrderViewState,
        location_tracker: LocationTracker,
    ):
        self.repository = repository
        self.view_state = view_state
        self.location = location_tracker
        self._sync = ViewStateSynchronizer(view_state)
        self._cash_collected: set[int] = set()

    @property
    def assigned_order(self) -> Optional[Order]:
        return self.view_state.assigned_order

    async def refresh_available(self) -> list[Order]:
        orders = await self._sync.load(self.repository.list_available)
        self.view_state.set_list("available", orders)
        return orders

    async def refresh_mine(self) -> list[Order]:
        """
        Reload the partner's orders and re-derive the assigned order.

        The assigned order is the first one still in a tracked status.
        """
        orders = await self._sync.load(self.repository.list_mine)
        self.view_state.set_list("mine", orders)
        active = next((o for o in orders if o.status in TRACKED_STATUSES), None)
        self.view_state.set_slot("assigned", active)
        await self.location.sync_with_order(active)
        return orders

    async def open(self, order_id: int) -> Order:
        order = await self.repository.get_details(order_id)
        self.view_state.set_slot("current", order)
        return order

    async def accept(self, order_id: int) -> Order:
        order = await self._sync.replace(lambda: self.repository.accept(order_id))
        self.view_state.accept_order(order)
        await self.location.sync_with_order(order)
        return order

    def confirm_cash_collected(self, order_id: int) -> None:
        self._cash_collected.add(order_id)

    def cash_collected(self, order_id: int) -> bool:
        return order_id in self._cash_collected

    async def deliver(self, order_id: int) -> Order:
        known = self.view_state.find(order_id)
        if requires_cash_confirmation(known) and not self.cash_collected(order_id):
            logger.warning(f"Delivering COD order {order_id} without cash confirmation")

        order = await self._sync.replace(lambda: self.repository.deliver(order_id))
        if self.assigned_order is not None and self.assigned_order.id == order.id:
            self.view_state.set_slot("assigned", None)
        self._cash_collected.discard(order_id)
        await self.location.sync_with_order(order)
        return order

    async def close(self) -> None:
        """Teardown: no uploads after this returns."""
        await self.location.stop()

