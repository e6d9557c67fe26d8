"""
Order Repositories — typed wrappers over the order endpoints.

Three audiences, one shape:
    DeliveryOrderRepository  — /delivery/orders/*   (delivery partner app)
    AdminOrderRepository     — /admin/orders/*      (restaurant admin app)
    CustomerOrderRepository  — /customer/orders/*   (customer app)

Delivery and admin repositories are the only callers of the state machine:
before a transition request is sent, the last known status of the order is
checked with can_transition(). Orders never seen before are sent unguarded;
the server decides.

Every mutation returns the full updated Order. Successful mutations
invalidate the cached order lists so the next read goes to the server.
"""
import logging
from typing import Optional

from api_client import ApiClient
from domain.constants import (
    ADMIN_ORDERS,
    CUSTOMER_ORDERS,
    DELIVERY_AVAILABLE_ORDERS,
    DELIVERY_MY_ORDERS,
    delivery_accept_path,
    delivery_deliver_path,
    delivery_location_path,
)
from domain.enums import OrderStatus, Role
from domain.errors import NotFoundError, ValidationError
from domain.responses import parse_model, parse_models
from domain.state_machine import ensure_transition
from models import Order, PlaceOrderRequest
from utils.validators import validate_coordinates

logger = logging.getLogger(__name__)


def _coerce_status(status) -> OrderStatus:
    """OrderStatus for a member or its string value, else ValidationError before any request."""
    try:
        return OrderStatus(status)
    except (ValueError, TypeError) as e:
        raise ValidationError(
            f"Unknown order status: {status!r}",
            code="invalid_status",
            status_code=None,
        ) from e


class OrderListCache:
    """
    Cached order lists plus the last server state seen for each order.

    Lists are dropped by invalidate(); the per-order index is not, since it
    only feeds the transition guard and is overwritten by every response.
    """

    def __init__(self):
        self._lists: dict[str, list[Order]] = {}
        self._known: dict[int, Order] = {}

    def get(self, name: str) -> Optional[list[Order]]:
        orders = self._lists.get(name)
        return list(orders) if orders is not None else None

    def put(self, name: str, orders: list[Order]) -> None:
        self._lists[name] = list(orders)
        for order in orders:
            self._known[order.id] = order

    def remember(self, order: Order) -> None:
        self._known[order.id] = order

    def known(self, order_id: int) -> Optional[Order]:
        return self._known.get(order_id)

    def invalidate(self, name: Optional[str] = None) -> None:
        if name is None:
            self._lists.clear()
        else:
            self._lists.pop(name, None)

    def is_cached(self, name: str) -> bool:
        return name in self._lists


class _GuardedRepository:
    """Shared plumbing: guard with the last known status, record results."""

    role: Role

    def __init__(self, client: ApiClient, cache: Optional[OrderListCache] = None):
        self._client = client
        self.cache = cache or OrderListCache()

    def _guard(self, order_id: int, requested: OrderStatus) -> None:
        known = self.cache.known(order_id)
        if known is None:
            logger.debug(f"Order {order_id} not cached; sending {requested.value} unguarded")
            return
        ensure_transition(known.status, requested, self.role)

    def _confirmed(self, data, action: str) -> Order:
        order = parse_model(Order, data)
        self.cache.invalidate()
        self.cache.remember(order)
        logger.info(f"Order {order.id} {action} → {order.status.value}")
        return order

    async def _list(self, name: str, path: str, params: Optional[dict] = None, use_cache: bool = False) -> list[Order]:
        if use_cache:
            cached = self.cache.get(name)
            if cached is not None:
                return cached
        orders = parse_models(Order, await self._client.get(path, params=params))
        self.cache.put(name, orders)
        return orders


class DeliveryOrderRepository(_GuardedRepository):
    """Delivery partner side of the order lifecycle."""

    role = Role.DELIVERY_BOY

    async def list_available(self, use_cache: bool = False) -> list[Order]:
        """Orders that are READY and waiting for a delivery partner."""
        return await self._list("available", DELIVERY_AVAILABLE_ORDERS, use_cache=use_cache)

    async def list_mine(self, use_cache: bool = False) -> list[Order]:
        """Orders assigned to (or delivered by) the signed-in partner."""
        return await self._list("mine", DELIVERY_MY_ORDERS, use_cache=use_cache)

    async def get_details(self, order_id: int, use_cache: bool = False) -> Order:
        """
        Single order lookup.

        There is no single-order endpoint on the delivery side, so this
        filters list_mine().
        """
        for order in await self.list_mine(use_cache=use_cache):
            if order.id == order_id:
                return order
        raise NotFoundError(f"Order {order_id} not found")

    async def accept(self, order_id: int) -> Order:
        """READY → OUT_FOR_DELIVERY."""
        self._guard(order_id, OrderStatus.OUT_FOR_DELIVERY)
        data = await self._client.post(delivery_accept_path(order_id))
        return self._confirmed(data, "accepted for delivery")

    async def deliver(self, order_id: int) -> Order:
        """OUT_FOR_DELIVERY → DELIVERED."""
        self._guard(order_id, OrderStatus.DELIVERED)
        data = await self._client.post(delivery_deliver_path(order_id))
        return self._confirmed(data, "delivered")

    async def update_location(
        self,
        order_id: int,
        latitude: float,
        longitude: float,
        address: Optional[str] = None,
    ) -> Optional[Order]:
        """
        Report the partner's position for an order.

        Sent as query parameters. Returns the Order when the server echoes
        one back, else None. Does not touch the list cache.
        """
        latitude, longitude = validate_coordinates(latitude, longitude)
        data = await self._client.post(
            delivery_location_path(order_id),
            params={"latitude": latitude, "longitude": longitude, "address": address},
        )
        if isinstance(data, dict) and "id" in data:
            order = parse_model(Order, data)
            self.cache.remember(order)
            return order
        return None


class AdminOrderRepository(_GuardedRepository):
    """Restaurant admin side of the order lifecycle."""

    role = Role.ADMIN

    async def list_orders(self, status: Optional[OrderStatus] = None, use_cache: bool = False) -> list[Order]:
        status = _coerce_status(status) if status is not None else None
        name = f"admin:{status.value if status else 'all'}"
        params = {"status": status.value} if status else None
        return await self._list(name, ADMIN_ORDERS, params=params, use_cache=use_cache)

    async def get_order(self, order_id: int) -> Order:
        order = parse_model(Order, await self._client.get(f"{ADMIN_ORDERS}/{order_id}"))
        self.cache.remember(order)
        return order

    async def accept(self, order_id: int) -> Order:
        self._guard(order_id, OrderStatus.ACCEPTED)
        data = await self._client.post(f"{ADMIN_ORDERS}/{order_id}/accept")
        return self._confirmed(data, "accepted")

    async def reject(self, order_id: int, reason: str) -> Order:
        self._guard(order_id, OrderStatus.REJECTED)
        data = await self._client.post(f"{ADMIN_ORDERS}/{order_id}/reject", json={"reason": reason})
        return self._confirmed(data, "rejected")

    async def update_status(self, order_id: int, status: OrderStatus) -> Order:
        status = _coerce_status(status)
        self._guard(order_id, status)
        data = await self._client.put(f"{ADMIN_ORDERS}/{order_id}/status", json={"status": status.value})
        return self._confirmed(data, "status updated")

    async def assign_delivery(self, order_id: int, delivery_boy_id: int) -> Order:
        """Assign a partner to a READY order; the status does not change."""
        self._guard(order_id, OrderStatus.READY)
        data = await self._client.put(
            f"{ADMIN_ORDERS}/{order_id}/assign-delivery",
            json={"deliveryBoyId": delivery_boy_id},
        )
        return self._confirmed(data, f"assigned to delivery partner {delivery_boy_id}")


class CustomerOrderRepository:
    """Customer side: placement and history. No client-side transitions."""

    def __init__(self, client: ApiClient):
        self._client = client

    async def place_order(self, request: PlaceOrderRequest) -> Order:
        order = parse_model(Order, await self._client.post(CUSTOMER_ORDERS, json=request.to_api()))
        logger.info(f"Order {order.id} placed ({order.order_number})")
        return order

    async def list_orders(self) -> list[Order]:
        return parse_models(Order, await self._client.get(CUSTOMER_ORDERS))

    async def get_order(self, order_id: int) -> Order:
        return parse_model(Order, await self._client.get(f"{CUSTOMER_ORDERS}/{order_id}"))
