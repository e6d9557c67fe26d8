"""
End-to-end delivery partner workflow against the fake backend.

Tests: accept → assigned order + tracking, deliver → tracking stops,
failed deliver leaves state untouched, COD confirmation is advisory.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import logging
import pytest

from domain.enums import OrderStatus, TrackerState
from domain.errors import IllegalTransitionError, ServerError
from models import Order
from services.order_tracker import DeliveryOrderTracker
from tests.fake_backend import DELIVERY_BOY_ID


@pytest.fixture
def tracker(delivery_repo, order_view, location_tracker) -> DeliveryOrderTracker:
    return DeliveryOrderTracker(delivery_repo, order_view, location_tracker)


class TestAcceptFlow:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_accept_42(self, tracker, backend):
        """READY order 42: accept → OUT_FOR_DELIVERY, assigned order updated, IDLE → TRACKING."""
        backend.add_order(42, "READY")
        await tracker.refresh_available()
        assert tracker.location.state is TrackerState.IDLE
        before = tracker.assigned_order

        order = await tracker.accept(42)

        assert order.status is OrderStatus.OUT_FOR_DELIVERY
        assert tracker.assigned_order is order
        assert tracker.assigned_order is not before
        assert tracker.location.state is TrackerState.TRACKING
        assert tracker.location.tracking_order_id == 42
        assert tracker.view_state.get_list("available") == []
        await tracker.close()
        assert tracker.location.state is TrackerState.IDLE

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_refresh_mine_resumes_tracking(self, tracker, backend):
        backend.add_order(9, "DELIVERED", deliveryBoyId=DELIVERY_BOY_ID)
        backend.add_order(10, "OUT_FOR_DELIVERY", deliveryBoyId=DELIVERY_BOY_ID)
        await tracker.refresh_mine()
        assert tracker.assigned_order.id == 10
        assert tracker.location.is_tracking
        await tracker.close()

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_open_sets_current(self, tracker, backend):
        backend.add_order(10, "OUT_FOR_DELIVERY", deliveryBoyId=DELIVERY_BOY_ID)
        order = await tracker.open(10)
        assert tracker.view_state.get_slot("current") is order


class TestDeliverFlow:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_deliver_clears_assigned_and_stops_tracking(self, tracker, backend):
        backend.add_order(42, "READY")
        await tracker.accept(42)
        order = await tracker.deliver(42)
        assert order.status is OrderStatus.DELIVERED
        assert tracker.assigned_order is None
        assert tracker.location.state is TrackerState.IDLE
        assert tracker.view_state.get_list("mine")[0].status is OrderStatus.DELIVERED

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_failed_deliver_leaves_list_unchanged(self, tracker, backend):
        backend.add_order(1, "READY")
        tracker.view_state.set_list("available", [Order(id=1, status="READY")])
        before = [o.model_dump_json() for o in tracker.view_state.get_list("available")]
        backend.fail_next["/delivery/orders/1/deliver"] = 500

        with pytest.raises(ServerError):
            await tracker.deliver(1)

        after = [o.model_dump_json() for o in tracker.view_state.get_list("available")]
        assert after == before
        assert tracker.view_state.error is not None

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_refused_deliver_leaves_list_unchanged(self, tracker, backend):
        """A READY order known to the client is refused locally; nothing is sent."""
        backend.add_order(1, "READY")
        await tracker.refresh_available()
        before = [o.model_dump_json() for o in tracker.view_state.get_list("available")]

        with pytest.raises(IllegalTransitionError):
            await tracker.deliver(1)

        assert [o.model_dump_json() for o in tracker.view_state.get_list("available")] == before
        assert backend.calls_to("/delivery/orders/1/deliver") == 0

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_cod_without_confirmation_still_delivers(self, tracker, backend, caplog):
        backend.add_order(42, "READY", paymentMethod="COD")
        await tracker.accept(42)

        with caplog.at_level(logging.WARNING, logger="services.order_tracker"):
            order = await tracker.deliver(42)

        assert order.status is OrderStatus.DELIVERED
        assert "without cash confirmation" in caplog.text

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_cod_with_confirmation_is_quiet(self, tracker, backend, caplog):
        backend.add_order(42, "READY", paymentMethod="COD")
        await tracker.accept(42)
        tracker.confirm_cash_collected(42)

        with caplog.at_level(logging.WARNING, logger="services.order_tracker"):
            await tracker.deliver(42)

        assert "without cash confirmation" not in caplog.text
        assert not tracker.cash_collected(42)
