"""
Domain enums shared by the state machine, repositories and trackers.
"""

from enum import Enum


class OrderStatus(str, Enum):
    PLACED = "PLACED"
    ACCEPTED = "ACCEPTED"
    PREPARING = "PREPARING"
    READY = "READY"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    COD = "COD"
    ONLINE = "ONLINE"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class Role(str, Enum):
    ADMIN = "ADMIN"
    DELIVERY_BOY = "DELIVERY_BOY"
    CUSTOMER = "CUSTOMER"


class TrackerState(str, Enum):
    IDLE = "IDLE"
    TRACKING = "TRACKING"
