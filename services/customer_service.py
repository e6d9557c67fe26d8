"""
Customer Service — cart, saved addresses, reviews and delivery-area checks.

The cart and address book live only on the device (key-value store); the
server sees them at checkout. Storage failures never surface here: a cart
that cannot be read loads empty, a cart that cannot be written stays in
memory for the session.
"""
import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from api_client import ApiClient
from config import Settings, settings as default_settings
from domain.constants import CUSTOMER_REVIEWS, STORAGE_CART_ITEMS, STORAGE_SAVED_ADDRESSES
from domain.enums import PaymentMethod
from domain.errors import ValidationError
from domain.responses import parse_model, parse_models
from models import CartLine, MenuItem, Order, PlaceOrderLine, PlaceOrderRequest, Review, SavedAddress
from services.order_repository import CustomerOrderRepository
from services.storage_service import KeyValueStore
from utils.geo import haversine_km

logger = logging.getLogger(__name__)


# ── Restaurant config ───────────────────────────────────────────────

class RestaurantConfig(BaseModel):
    """Restaurant defaults for client-side checks; the server re-validates."""
    restaurant_name: str = "Shiv Dhaba"
    delivery_city: str = "Meerut"
    min_order_amount: Decimal = Decimal("100.00")
    delivery_radius_km: float = 15.0
    restaurant_latitude: float = 28.9845
    restaurant_longitude: float = 77.7064

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RestaurantConfig":
        s = settings or default_settings
        return cls(
            restaurant_name=s.restaurant_name,
            delivery_city=s.delivery_city,
            min_order_amount=s.min_order_amount,
            delivery_radius_km=s.delivery_radius_km,
            restaurant_latitude=s.restaurant_latitude,
            restaurant_longitude=s.restaurant_longitude,
        )


def is_within_delivery_area(
    city: Optional[str],
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    config: Optional[RestaurantConfig] = None,
) -> bool:
    """
    UX pre-check for an address. The city must mention the delivery city;
    coordinates, when given, must fall inside the delivery radius.
    """
    config = config or RestaurantConfig()
    if not city or config.delivery_city.lower() not in city.lower():
        return False
    if latitude is None or longitude is None:
        return True
    distance = haversine_km(config.restaurant_latitude, config.restaurant_longitude, latitude, longitude)
    return distance <= config.delivery_radius_km


# ── Cart ────────────────────────────────────────────────────────────

class Cart:
    """
    Persistent cart. Lines are keyed by (menu item, special instructions):
    adding the same item with the same instructions merges quantities.
    """

    def __init__(self, storage: KeyValueStore):
        self._storage = storage
        self._lines: list[CartLine] = []

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    @property
    def total(self) -> Decimal:
        return sum((line.subtotal for line in self._lines), Decimal("0"))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    def is_empty(self) -> bool:
        return not self._lines

    async def load(self) -> list[CartLine]:
        raw = await self._storage.get_json(STORAGE_CART_ITEMS, [])
        lines = []
        for entry in raw if isinstance(raw, list) else []:
            try:
                lines.append(CartLine.model_validate(entry))
            except PydanticValidationError as e:
                logger.warning(f"Dropping unreadable cart line: {e.error_count()} error(s)")
        self._lines = lines
        return self.lines

    async def _save(self) -> bool:
        return await self._storage.set_json(STORAGE_CART_ITEMS, [line.to_api() for line in self._lines])

    def _find(self, menu_item_id: int, special_instructions: Optional[str] = None) -> Optional[CartLine]:
        for line in self._lines:
            if line.menu_item_id != menu_item_id:
                continue
            if special_instructions is None or line.special_instructions == special_instructions:
                return line
        return None

    async def add(self, item: MenuItem, quantity: int = 1, special_instructions: str = "") -> CartLine:
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1", code="invalid_quantity")
        if not item.is_available:
            raise ValidationError(f"{item.name} is not available right now", code="item_unavailable")

        special_instructions = special_instructions or ""
        line = self._find(item.id, special_instructions)
        if line is not None:
            line.quantity += quantity
        else:
            line = CartLine(
                menu_item_id=item.id,
                name=item.name,
                unit_price=item.price,
                quantity=quantity,
                special_instructions=special_instructions,
                image_url=item.image_url,
            )
            self._lines.append(line)
        await self._save()
        return line

    async def remove(self, menu_item_id: int, special_instructions: Optional[str] = None) -> None:
        """Remove the item's line(s); only the matching line if instructions are given."""
        self._lines = [
            line for line in self._lines
            if not (
                line.menu_item_id == menu_item_id
                and (special_instructions is None or line.special_instructions == special_instructions)
            )
        ]
        await self._save()

    async def update_quantity(self, menu_item_id: int, quantity: int) -> None:
        """Set a line's quantity; zero or less removes the item."""
        if self._find(menu_item_id) is None:
            return
        if quantity <= 0:
            await self.remove(menu_item_id)
            return
        self._find(menu_item_id).quantity = quantity
        await self._save()

    async def update_instructions(self, menu_item_id: int, special_instructions: str) -> None:
        line = self._find(menu_item_id)
        if line is None:
            return
        line.special_instructions = special_instructions or ""
        await self._save()

    async def clear(self) -> None:
        self._lines = []
        await self._storage.remove(STORAGE_CART_ITEMS)

    def validate_for_checkout(self, min_amount: Decimal) -> None:
        if not self._lines:
            raise ValidationError("Your cart is empty", code="empty_cart")
        if self.total < min_amount:
            raise ValidationError(f"Minimum order amount is ₹{min_amount}", code="below_minimum")

    def to_order_lines(self) -> list[PlaceOrderLine]:
        return [
            PlaceOrderLine(
                menu_item_id=line.menu_item_id,
                quantity=line.quantity,
                special_instructions=line.special_instructions or None,
            )
            for line in self._lines
        ]

    async def checkout(
        self,
        orders: CustomerOrderRepository,
        address: SavedAddress,
        payment_method: PaymentMethod = PaymentMethod.COD,
        config: Optional[RestaurantConfig] = None,
    ) -> Order:
        """Place the cart as an order. The cart is cleared only on success."""
        config = config or RestaurantConfig()
        self.validate_for_checkout(config.min_order_amount)
        if not is_within_delivery_area(address.city, address.latitude, address.longitude, config):
            raise ValidationError(f"We currently deliver only within {config.delivery_city}", code="out_of_area")

        request = PlaceOrderRequest(
            items=self.to_order_lines(),
            delivery_address=address.address,
            delivery_city=address.city,
            delivery_latitude=address.latitude,
            delivery_longitude=address.longitude,
            payment_method=payment_method,
        )
        order = await orders.place_order(request)
        await self.clear()
        return order


# ── Address book ────────────────────────────────────────────────────

class AddressBook:
    """Saved delivery addresses, device-local only."""

    def __init__(self, storage: KeyValueStore):
        self._storage = storage

    async def list(self) -> list[SavedAddress]:
        raw = await self._storage.get_json(STORAGE_SAVED_ADDRESSES, [])
        addresses = []
        for entry in raw if isinstance(raw, list) else []:
            try:
                addresses.append(SavedAddress.model_validate(entry))
            except PydanticValidationError:
                logger.warning("Dropping unreadable saved address")
        return addresses

    async def save(
        self,
        address: str,
        city: str,
        label: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> SavedAddress:
        if not address or not address.strip():
            raise ValidationError("Address is required", code="missing_address")
        saved = SavedAddress(
            id=uuid.uuid4().hex,
            label=label,
            address=address.strip(),
            city=city,
            latitude=latitude,
            longitude=longitude,
            created_at=datetime.utcnow(),
        )
        addresses = await self.list()
        addresses.append(saved)
        await self._storage.set_json(STORAGE_SAVED_ADDRESSES, [a.to_api() for a in addresses])
        return saved

    async def delete(self, address_id: str) -> None:
        addresses = [a for a in await self.list() if a.id != address_id]
        await self._storage.set_json(STORAGE_SAVED_ADDRESSES, [a.to_api() for a in addresses])


# ── Reviews ─────────────────────────────────────────────────────────

class ReviewService:
    def __init__(self, client: ApiClient):
        self._client = client

    async def submit(self, order_id: int, rating: int, comment: Optional[str] = None) -> Review:
        try:
            review = Review(order_id=order_id, rating=rating, comment=comment)
        except PydanticValidationError:
            raise ValidationError("Rating must be between 1 and 5", code="invalid_rating")
        data = await self._client.post(CUSTOMER_REVIEWS, json=review.to_api())
        return parse_model(Review, data) if isinstance(data, dict) else review

    async def list_mine(self) -> list[Review]:
        return parse_models(Review, await self._client.get(CUSTOMER_REVIEWS))
