"""
Admin Service — the restaurant's order board and dashboard.
"""
import logging
from typing import Optional

from api_client import ApiClient
from domain.constants import ADMIN_DASHBOARD_STATS, ADMIN_DELIVERY_BOYS, ADMIN_SALES_REPORT
from domain.enums import OrderStatus
from domain.errors import ValidationError
from domain.responses import parse_models
from models import DeliveryBoy, Order
from services.order_repository import AdminOrderRepository
from services.view_state import OrderViewState, ViewStateSynchronizer

logger = logging.getLogger(__name__)

REPORT_PERIODS = ("today", "week", "month")


class AdminOrderDesk:
    """
    Order board for the admin app.

    Every mutation goes through the synchronizer: the board is only updated
    with the order the server returns, and is left alone on failure.
    """

    def __init__(self, repository: AdminOrderRepository, view_state: OrderViewState):
        self.repository = repository
        self.view_state = view_state
        self._sync = ViewStateSynchronizer(view_state)

    @property
    def orders(self) -> list[Order]:
        return self.view_state.get_list("admin")

    async def refresh(self, status: Optional[OrderStatus] = None) -> list[Order]:
        orders = await self._sync.load(lambda: self.repository.list_orders(status))
        self.view_state.set_list("admin", orders)
        return orders

    async def open(self, order_id: int) -> Order:
        order = await self._sync.load(lambda: self.repository.get_order(order_id))
        self.view_state.set_slot("current", order)
        return order

    async def accept(self, order_id: int) -> Order:
        return await self._sync.replace(lambda: self.repository.accept(order_id))

    async def reject(self, order_id: int, reason: str) -> Order:
        return await self._sync.replace(lambda: self.repository.reject(order_id, reason))

    async def update_status(self, order_id: int, status: OrderStatus) -> Order:
        return await self._sync.replace(lambda: self.repository.update_status(order_id, status))

    async def assign_delivery(self, order_id: int, delivery_boy_id: int) -> Order:
        return await self._sync.replace(lambda: self.repository.assign_delivery(order_id, delivery_boy_id))


class AdminDashboardService:
    def __init__(self, client: ApiClient):
        self._client = client

    @staticmethod
    def _period(period: str) -> dict:
        if period not in REPORT_PERIODS:
            raise ValidationError(f"Unknown report period: {period}", code="invalid_period")
        return {"period": period}

    async def stats(self, period: str = "today") -> dict:
        return await self._client.get(ADMIN_DASHBOARD_STATS, params=self._period(period)) or {}

    async def sales_report(self, period: str = "today") -> dict:
        return await self._client.get(ADMIN_SALES_REPORT, params=self._period(period)) or {}

    async def delivery_boys(self) -> list[DeliveryBoy]:
        return parse_models(DeliveryBoy, await self._client.get(ADMIN_DELIVERY_BOYS))
