"""
Pydantic models for request/response payloads and cached domain state.

The backend speaks camelCase; every model accepts either the alias or the
Python name and dumps back to camelCase with by_alias=True. Unknown fields
are kept so a cached entity round-trips unchanged.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from domain.enums import OrderStatus, PaymentMethod, PaymentStatus


class ApiModel(BaseModel):
    """Shared base — construction by Python name or alias, extra fields kept."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_api(self) -> dict:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


# ── Orders ──────────────────────────────────────────────────────────

class OrderItem(ApiModel):
    id: Optional[int] = None
    menu_item_id: int = Field(..., alias="menuItemId")
    name: str = Field(
        "",
        validation_alias=AliasChoices("menuItemName", "name"),
        serialization_alias="menuItemName",
    )
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("price", "unitPrice", "unit_price"),
        serialization_alias="price",
    )
    subtotal: Optional[Decimal] = Field(default=None, ge=0)


class Payment(ApiModel):
    id: Optional[int] = None
    payment_method: PaymentMethod = Field(..., alias="paymentMethod")
    payment_status: PaymentStatus = Field(PaymentStatus.PENDING, alias="paymentStatus")
    amount: Optional[Decimal] = Field(default=None, ge=0)
    transaction_id: Optional[str] = Field(default=None, alias="transactionId")
    paid_at: Optional[datetime] = Field(default=None, alias="paidAt")


# Lifecycle timestamps in the order they must occur
LIFECYCLE_TIMESTAMPS = ("accepted_at", "ready_at", "out_for_delivery_at", "delivered_at")


class Order(ApiModel):
    """Server-owned order; the client holds a write-through cache of it."""
    id: int
    order_number: Optional[str] = Field(default=None, alias="orderNumber")
    status: OrderStatus

    customer_id: Optional[int] = Field(default=None, alias="customerId")
    customer_name: Optional[str] = Field(default=None, alias="customerName")
    customer_mobile: Optional[str] = Field(default=None, alias="customerMobile")
    delivery_boy_id: Optional[int] = Field(default=None, alias="deliveryBoyId")
    delivery_boy_name: Optional[str] = Field(default=None, alias="deliveryBoyName")

    subtotal: Decimal = Field(Decimal("0"), ge=0)
    delivery_charge: Decimal = Field(Decimal("0"), ge=0, alias="deliveryCharge")
    total_amount: Decimal = Field(Decimal("0"), ge=0, alias="totalAmount")

    payment_method: Optional[PaymentMethod] = Field(default=None, alias="paymentMethod")
    payment: Optional[Payment] = None

    delivery_address: str = Field("", alias="deliveryAddress")
    delivery_latitude: Optional[float] = Field(default=None, ge=-90, le=90, alias="deliveryLatitude")
    delivery_longitude: Optional[float] = Field(default=None, ge=-180, le=180, alias="deliveryLongitude")
    delivery_city: Optional[str] = Field(default=None, alias="deliveryCity")
    special_instructions: Optional[str] = Field(default=None, alias="specialInstructions")

    items: List[OrderItem] = Field(default_factory=list)

    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    accepted_at: Optional[datetime] = Field(default=None, alias="acceptedAt")
    ready_at: Optional[datetime] = Field(default=None, alias="readyAt")
    out_for_delivery_at: Optional[datetime] = Field(default=None, alias="outForDeliveryAt")
    delivered_at: Optional[datetime] = Field(default=None, alias="deliveredAt")

    @model_validator(mode="after")
    def _lifecycle_is_monotonic(self):
        previous = None
        for name in LIFECYCLE_TIMESTAMPS:
            value = getattr(self, name)
            if value is None:
                continue
            if previous is not None and value < previous[1]:
                raise ValueError(f"{name} is earlier than {previous[0]}")
            previous = (name, value)
        return self

    @property
    def effective_payment_method(self) -> Optional[PaymentMethod]:
        if self.payment_method is not None:
            return self.payment_method
        return self.payment.payment_method if self.payment else None

    @property
    def has_destination(self) -> bool:
        return self.delivery_latitude is not None and self.delivery_longitude is not None


class PlaceOrderLine(ApiModel):
    menu_item_id: int = Field(..., alias="menuItemId")
    quantity: int = Field(..., ge=1)
    special_instructions: Optional[str] = Field(default=None, alias="specialInstructions")


class PlaceOrderRequest(ApiModel):
    """Checkout payload for POST /customer/orders."""
    items: List[PlaceOrderLine] = Field(..., min_length=1)
    delivery_address: str = Field(..., min_length=1, alias="deliveryAddress")
    delivery_city: str = Field(..., alias="deliveryCity")
    delivery_latitude: Optional[float] = Field(default=None, alias="deliveryLatitude")
    delivery_longitude: Optional[float] = Field(default=None, alias="deliveryLongitude")
    payment_method: PaymentMethod = Field(PaymentMethod.COD, alias="paymentMethod")
    special_instructions: Optional[str] = Field(default=None, alias="specialInstructions")


# ── Delivery partner ────────────────────────────────────────────────

class DeliveryBoyStatus(ApiModel):
    """isAvailable should imply isOnDuty; not enforced here."""
    is_available: bool = Field(..., alias="isAvailable")
    is_on_duty: bool = Field(..., alias="isOnDuty")


class DeliveryBoy(ApiModel):
    id: int
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "fullName"))
    mobile: Optional[str] = Field(default=None, validation_alias=AliasChoices("mobile", "mobileNumber"))
    is_available: bool = Field(False, alias="isAvailable")
    is_on_duty: bool = Field(False, alias="isOnDuty")


class LocationSample(ApiModel):
    """One device position fix; lives only for the tracking session."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(default=None, ge=0)
    timestamp: int = Field(..., description="Epoch milliseconds")
    address: Optional[str] = None


# ── Auth ────────────────────────────────────────────────────────────

class UserProfile(ApiModel):
    id: int
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "fullName"))
    mobile: Optional[str] = Field(default=None, validation_alias=AliasChoices("mobile", "mobileNumber"))
    email: Optional[str] = None
    role: str
    is_active: Optional[bool] = Field(default=None, alias="isActive")


class TokenPair(ApiModel):
    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")


class AuthResponse(TokenPair):
    user: UserProfile


# ── Menu ────────────────────────────────────────────────────────────

class Category(ApiModel):
    id: int
    name: str
    description: Optional[str] = None
    display_order: Optional[int] = Field(default=None, alias="displayOrder")
    is_active: bool = Field(True, alias="isActive")


class MenuItem(ApiModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    category_id: Optional[int] = Field(default=None, alias="categoryId")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    is_available: bool = Field(True, alias="isAvailable")
    is_vegetarian: Optional[bool] = Field(default=None, alias="isVegetarian")


# ── Customer ────────────────────────────────────────────────────────

class CartLine(ApiModel):
    menu_item_id: int = Field(..., alias="menuItemId")
    name: str = ""
    unit_price: Decimal = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("price", "unitPrice", "unit_price"),
        serialization_alias="price",
    )
    quantity: int = Field(..., ge=1)
    special_instructions: str = Field("", alias="specialInstructions")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


class SavedAddress(ApiModel):
    id: str
    label: Optional[str] = None
    address: str
    city: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


class Review(ApiModel):
    id: Optional[int] = None
    order_id: int = Field(..., alias="orderId")
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None
