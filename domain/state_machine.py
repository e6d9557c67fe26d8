"""
Order status state machine — client-side transition guard.

The server is the sole enforcer of legality. These functions only stop the
client from firing requests that are certain to be refused:

    Admin:     PLACED → ACCEPTED | REJECTED
               ACCEPTED → PREPARING
               PREPARING → READY
               READY → READY             (assign delivery, status unchanged)
    Delivery:  READY → OUT_FOR_DELIVERY  (accept call)
               OUT_FOR_DELIVERY → DELIVERED (deliver call)

DELIVERED, REJECTED and CANCELLED are terminal.
"""
from typing import Any, Optional

from domain.enums import OrderStatus, PaymentMethod, Role
from domain.errors import IllegalTransitionError

TERMINAL_STATUSES = frozenset({
    OrderStatus.DELIVERED,
    OrderStatus.REJECTED,
    OrderStatus.CANCELLED,
})

TRANSITIONS: dict[Role, dict[OrderStatus, frozenset]] = {
    Role.ADMIN: {
        OrderStatus.PLACED: frozenset({OrderStatus.ACCEPTED, OrderStatus.REJECTED}),
        OrderStatus.ACCEPTED: frozenset({OrderStatus.PREPARING}),
        OrderStatus.PREPARING: frozenset({OrderStatus.READY}),
        OrderStatus.READY: frozenset({OrderStatus.READY}),
    },
    Role.DELIVERY_BOY: {
        OrderStatus.READY: frozenset({OrderStatus.OUT_FOR_DELIVERY}),
        OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED}),
    },
    Role.CUSTOMER: {},
}


def _coerce(enum_cls, value: Any):
    """Enum member for value, or None for anything unrecognised."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        return None


def is_terminal(status: Any) -> bool:
    return _coerce(OrderStatus, status) in TERMINAL_STATUSES


def allowed_transitions(current: Any, role: Any) -> frozenset:
    """Statuses reachable from current for role (empty for unknown input)."""
    status = _coerce(OrderStatus, current)
    actor = _coerce(Role, role)
    if status is None or actor is None or status in TERMINAL_STATUSES:
        return frozenset()
    return TRANSITIONS[actor].get(status, frozenset())


def can_transition(current: Any, requested: Any, role: Any) -> bool:
    """
    Decide whether the client should send a transition request.

    Total over its inputs: unknown statuses or roles return False rather
    than raising.
    """
    target = _coerce(OrderStatus, requested)
    if target is None:
        return False
    return target in allowed_transitions(current, role)


def ensure_transition(current: Any, requested: Any, role: Any) -> None:
    """Raise IllegalTransitionError when can_transition says no."""
    if not can_transition(current, requested, role):
        raise IllegalTransitionError(
            getattr(current, "value", str(current)),
            getattr(requested, "value", str(requested)),
            getattr(role, "value", str(role)),
        )


def requires_cash_confirmation(order: Optional[Any]) -> bool:
    """
    True when delivering this order should first confirm cash collection.

    Advisory only; nothing below the UI enforces it.
    """
    if order is None:
        return False
    method = _coerce(
        PaymentMethod,
        getattr(order, "effective_payment_method", None) or getattr(order, "payment_method", None),
    )
    status = _coerce(OrderStatus, getattr(order, "status", None))
    return method is PaymentMethod.COD and status is OrderStatus.OUT_FOR_DELIVERY
