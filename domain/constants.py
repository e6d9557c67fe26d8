"""
Domain constants used across the client: endpoints, storage keys, geo.
"""
from domain.enums import OrderStatus

# ── Auth ────────────────────────────────────────────────────────────
AUTH_SEND_OTP = "/auth/otp/send"
AUTH_VERIFY_DELIVERY_OTP = "/auth/otp/verify/delivery"
AUTH_ADMIN_SEND_OTP = "/auth/admin/otp/send"
AUTH_ADMIN_VERIFY_OTP = "/auth/admin/otp/verify"
AUTH_REFRESH = "/auth/refresh"

# ── Delivery partner ────────────────────────────────────────────────
DELIVERY_AVAILABLE_ORDERS = "/delivery/orders/available"
DELIVERY_MY_ORDERS = "/delivery/orders/my-orders"
DELIVERY_STATUS = "/delivery/status"
DELIVERY_FCM_TOKEN = "/delivery/fcm-token"


def delivery_accept_path(order_id: int) -> str:
    return f"/delivery/orders/{order_id}/accept"


def delivery_location_path(order_id: int) -> str:
    return f"/delivery/orders/{order_id}/update-location"


def delivery_deliver_path(order_id: int) -> str:
    return f"/delivery/orders/{order_id}/deliver"


# ── Admin ───────────────────────────────────────────────────────────
ADMIN_ORDERS = "/admin/orders"
ADMIN_DASHBOARD_STATS = "/admin/dashboard/stats"
ADMIN_SALES_REPORT = "/admin/dashboard/sales-report"
ADMIN_DELIVERY_BOYS = "/admin/delivery-boys"
ADMIN_CATEGORIES = "/admin/menu/categories"
ADMIN_MENU_ITEMS = "/admin/menu/items"

# ── Customer ────────────────────────────────────────────────────────
CUSTOMER_ORDERS = "/customer/orders"
CUSTOMER_REVIEWS = "/customer/reviews"

# ── Local storage keys ─────────────────────────────────────────────
STORAGE_ACCESS_TOKEN = "@access_token"
STORAGE_REFRESH_TOKEN = "@refresh_token"
STORAGE_USER_PROFILE = "@user_profile"
STORAGE_FCM_TOKEN = "@fcm_token"
STORAGE_CART_ITEMS = "@cart_items"
STORAGE_SAVED_ADDRESSES = "@saved_addresses"

# ── Geo ─────────────────────────────────────────────────────────────
EARTH_RADIUS_KM = 6371.0

# Statuses during which the delivery partner's position is tracked
TRACKED_STATUSES = frozenset({OrderStatus.READY, OrderStatus.OUT_FOR_DELIVERY})

NETWORK_ERROR_MESSAGE = "Network error. Please check your internet connection."
SERVER_ERROR_MESSAGE = "Something went wrong. Please try again."
