"""
Tests for the order status state machine.

Tests: can_transition totality, terminal states, per-role edges, COD check.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest

from domain.enums import OrderStatus, Role
from domain.errors import IllegalTransitionError, ValidationError
from domain.state_machine import (
    TERMINAL_STATUSES,
    allowed_transitions,
    can_transition,
    ensure_transition,
    is_terminal,
    requires_cash_confirmation,
)
from models import Order


class TestCanTransition:
    """can_transition() must answer for every input without raising."""

    @pytest.mark.unit
    @pytest.mark.parametrize("current, requested", [
        ("PLACED", "ACCEPTED"),
        ("PLACED", "REJECTED"),
        ("ACCEPTED", "PREPARING"),
        ("PREPARING", "READY"),
        ("READY", "READY"),
    ])
    def test_admin_edges(self, current, requested):
        assert can_transition(current, requested, Role.ADMIN) is True

    @pytest.mark.unit
    @pytest.mark.parametrize("current, requested", [
        (OrderStatus.READY, OrderStatus.OUT_FOR_DELIVERY),
        (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED),
    ])
    def test_delivery_edges(self, current, requested):
        assert can_transition(current, requested, Role.DELIVERY_BOY) is True

    @pytest.mark.unit
    def test_roles_do_not_share_edges(self):
        """Admins cannot dispatch, delivery partners cannot prepare."""
        assert can_transition("READY", "OUT_FOR_DELIVERY", "ADMIN") is False
        assert can_transition("PREPARING", "READY", "DELIVERY_BOY") is False

    @pytest.mark.unit
    def test_customer_has_no_edges(self):
        for current in OrderStatus:
            for requested in OrderStatus:
                assert can_transition(current, requested, Role.CUSTOMER) is False

    @pytest.mark.unit
    def test_no_backward_transitions(self):
        """Delivered orders never go back to OUT_FOR_DELIVERY, READY never to PREPARING."""
        assert can_transition("DELIVERED", "OUT_FOR_DELIVERY", "DELIVERY_BOY") is False
        assert can_transition("READY", "PREPARING", "ADMIN") is False
        assert can_transition("ACCEPTED", "PLACED", "ADMIN") is False

    @pytest.mark.unit
    def test_total_over_every_status_and_role(self):
        """Every combination of known and unknown inputs returns a bool."""
        statuses = [*OrderStatus, "BOGUS", "", None, 42]
        roles = [*Role, "SUPERUSER", None]
        for current in statuses:
            for requested in statuses:
                for role in roles:
                    assert isinstance(can_transition(current, requested, role), bool)

    @pytest.mark.unit
    @pytest.mark.parametrize("current, requested, role", [
        ("BOGUS", "READY", "ADMIN"),
        ("PLACED", "BOGUS", "ADMIN"),
        ("PLACED", "ACCEPTED", "CHEF"),
        (None, None, None),
    ])
    def test_unknown_inputs_are_false(self, current, requested, role):
        assert can_transition(current, requested, role) is False


class TestTerminalStates:

    @pytest.mark.unit
    def test_terminal_set(self):
        assert TERMINAL_STATUSES == {OrderStatus.DELIVERED, OrderStatus.REJECTED, OrderStatus.CANCELLED}

    @pytest.mark.unit
    @pytest.mark.parametrize("status", ["DELIVERED", "REJECTED", "CANCELLED"])
    def test_terminal_has_no_successor(self, status):
        assert is_terminal(status)
        for role in Role:
            assert allowed_transitions(status, role) == frozenset()
            for requested in OrderStatus:
                assert can_transition(status, requested, role) is False

    @pytest.mark.unit
    def test_placed_is_not_terminal(self):
        assert not is_terminal(OrderStatus.PLACED)


class TestEnsureTransition:

    @pytest.mark.unit
    def test_allowed_passes(self):
        ensure_transition(OrderStatus.READY, OrderStatus.OUT_FOR_DELIVERY, Role.DELIVERY_BOY)

    @pytest.mark.unit
    def test_refused_raises_validation_error(self):
        with pytest.raises(IllegalTransitionError) as exc_info:
            ensure_transition("PLACED", "DELIVERED", "DELIVERY_BOY")
        assert isinstance(exc_info.value, ValidationError)
        assert exc_info.value.code == "illegal_transition"
        assert exc_info.value.details["current"] == "PLACED"


class TestCashConfirmation:

    @pytest.mark.unit
    def test_cod_out_for_delivery_requires_confirmation(self):
        order = Order(id=1, status="OUT_FOR_DELIVERY", paymentMethod="COD")
        assert requires_cash_confirmation(order) is True

    @pytest.mark.unit
    def test_payment_object_is_used_when_method_missing(self):
        order = Order(id=1, status="OUT_FOR_DELIVERY", payment={"paymentMethod": "COD"})
        assert requires_cash_confirmation(order) is True

    @pytest.mark.unit
    def test_online_or_other_status_does_not(self):
        assert requires_cash_confirmation(Order(id=1, status="OUT_FOR_DELIVERY", paymentMethod="ONLINE")) is False
        assert requires_cash_confirmation(Order(id=1, status="READY", paymentMethod="COD")) is False
        assert requires_cash_confirmation(None) is False
