"""
Composition root.

Builds every component once and passes dependencies explicitly; nothing
below this module reaches for a global. open_client() plays the role of an
app lifespan: open the local store (in memory if the file store fails),
restore the session, yield, then stop tracking, close the HTTP client and
dispose of the engine.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from api_client import ApiClient
from config import Settings, settings as default_settings
from database import make_session_factory, open_store
from services.admin_service import AdminDashboardService, AdminOrderDesk
from services.auth_service import AuthService
from services.customer_service import AddressBook, Cart, RestaurantConfig, ReviewService
from services.delivery_service import DeliveryStatusService
from services.location_service import LocationProvider, LocationTracker, ReplayLocationProvider
from services.menu_service import MenuManager, MenuRepository
from services.order_repository import AdminOrderRepository, CustomerOrderRepository, DeliveryOrderRepository
from services.order_tracker import DeliveryOrderTracker
from services.storage_service import KeyValueStore
from services.token_store import TokenStore
from services.view_state import MenuViewState, OrderViewState
from utils.throttle import UploadThrottle

logger = logging.getLogger(__name__)


@dataclass
class ClientContext:
    settings: Settings
    engine: AsyncEngine
    storage: KeyValueStore
    tokens: TokenStore
    client: ApiClient
    auth: AuthService

    orders: OrderViewState
    menu: MenuViewState

    delivery_orders: DeliveryOrderRepository
    delivery_status: DeliveryStatusService
    location: LocationTracker
    tracker: DeliveryOrderTracker

    admin_orders: AdminOrderRepository
    admin_desk: AdminOrderDesk
    dashboard: AdminDashboardService
    menu_manager: MenuManager

    customer_orders: CustomerOrderRepository
    cart: Cart
    addresses: AddressBook
    reviews: ReviewService
    restaurant: RestaurantConfig


@asynccontextmanager
async def open_client(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    provider: Optional[LocationProvider] = None,
) -> AsyncIterator[ClientContext]:
    """
    Open a fully wired client.

    Args:
        settings: Overrides the module-level settings
        transport: httpx transport (tests mount a fake backend here)
        provider: Position source; defaults to an empty replay provider
    """
    settings = settings or default_settings
    settings.validate_production_settings()

    engine = await open_store(settings.local_db_url)
    storage = KeyValueStore(make_session_factory(engine))

    tokens = TokenStore(storage)
    await tokens.load()

    orders = OrderViewState()
    menu = MenuViewState()

    async def on_logout():
        # location is bound below; this only runs once the client is wired
        await location.stop()
        orders.reset()
        menu.reset()
        logger.info("Session ended; tracking stopped and view state cleared")

    client = ApiClient(tokens, settings=settings, transport=transport, on_logout=on_logout)

    delivery_orders = DeliveryOrderRepository(client)
    throttle = UploadThrottle(
        gate=settings.location_upload_gate,
        interval_ms=settings.location_update_interval_ms,
        min_displacement_m=settings.location_min_displacement_meters,
    )
    location = LocationTracker(
        provider or ReplayLocationProvider([]),
        delivery_orders,
        throttle,
        sample_interval=settings.location_sample_interval_seconds,
    )
    admin_orders = AdminOrderRepository(client)

    ctx = ClientContext(
        settings=settings,
        engine=engine,
        storage=storage,
        tokens=tokens,
        client=client,
        auth=AuthService(client, tokens),
        orders=orders,
        menu=menu,
        delivery_orders=delivery_orders,
        delivery_status=DeliveryStatusService(client, storage),
        location=location,
        tracker=DeliveryOrderTracker(delivery_orders, orders, location),
        admin_orders=admin_orders,
        admin_desk=AdminOrderDesk(admin_orders, orders),
        dashboard=AdminDashboardService(client),
        menu_manager=MenuManager(MenuRepository(client), menu),
        customer_orders=CustomerOrderRepository(client),
        cart=Cart(storage),
        addresses=AddressBook(storage),
        reviews=ReviewService(client),
        restaurant=RestaurantConfig.from_settings(settings),
    )
    await ctx.cart.load()
    logger.info(f"Client opened against {settings.api_base_url}")

    try:
        yield ctx
    finally:
        await ctx.tracker.close()
        await client.aclose()
        await engine.dispose()
        logger.info("Client closed")
