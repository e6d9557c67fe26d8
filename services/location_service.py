"""
Location Service — delivery partner position tracking.

State machine:  IDLE → TRACKING → IDLE

    - TRACKING starts when the partner's order is READY or OUT_FOR_DELIVERY
      and stops when it leaves those states, on stop(), or on teardown
    - while TRACKING, a background asyncio task samples the position source
      every `sample_interval` seconds
    - every sample updates the in-memory current location (and with it the
      on-screen distance to the customer)
    - samples passing the UploadThrottle gate are POSTed to
      /delivery/orders/{id}/update-location; upload failures are logged and
      swallowed, sampling continues

stop() is idempotent and awaits the sampling task, so once it returns no
further upload can happen.
"""
import asyncio
import logging
from typing import Iterable, Optional, Protocol

from domain.constants import TRACKED_STATUSES
from domain.enums import TrackerState
from domain.errors import AppError
from exceptions import LocationProviderError
from models import LocationSample, Order
from services.order_repository import DeliveryOrderRepository
from utils.geo import haversine_km, haversine_m  # noqa: F401  (re-exported)
from utils.throttle import UploadThrottle

logger = logging.getLogger(__name__)


class LocationProvider(Protocol):
    """Source of device position fixes (GPS, a simulator, a replay file)."""

    async def current_position(self) -> LocationSample:
        ...


class ReplayLocationProvider:
    """
    Plays back a fixed sequence of samples, then keeps returning the last.

    Used by the CLI and tests where there is no position hardware.
    """

    def __init__(self, samples: Iterable[LocationSample]):
        self._samples = list(samples)
        self._index = 0

    async def current_position(self) -> LocationSample:
        if not self._samples:
            raise LocationProviderError("No position available")
        sample = self._samples[min(self._index, len(self._samples) - 1)]
        self._index += 1
        return sample


class LocationTracker:
    """Tracks one order at a time for the signed-in delivery partner."""

    def __init__(
        self,
        provider: LocationProvider,
        repository: DeliveryOrderRepository,
        throttle: UploadThrottle,
        sample_interval: float = 1.0,
    ):
        self._provider = provider
        self._repository = repository
        self._throttle = throttle
        self._sample_interval = sample_interval

        self._state = TrackerState.IDLE
        self._order: Optional[Order] = None
        self._current: Optional[LocationSample] = None
        self._task: Optional[asyncio.Task] = None
        self._generation = 0

        self.uploads_count = 0
        self.errors_count = 0

    # ── Read side ───────────────────────────────────────────────────

    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def is_tracking(self) -> bool:
        return self._state is TrackerState.TRACKING

    @property
    def tracking_order_id(self) -> Optional[int]:
        return self._order.id if self._order else None

    @property
    def current_location(self) -> Optional[LocationSample]:
        return self._current

    @property
    def distance_to_destination_km(self) -> Optional[float]:
        """Straight-line distance from the last sample to the delivery address."""
        if self._current is None or self._order is None or not self._order.has_destination:
            return None
        return haversine_km(
            self._current.latitude,
            self._current.longitude,
            self._order.delivery_latitude,
            self._order.delivery_longitude,
        )

    def get_status(self) -> dict:
        return {
            "state": self._state.value,
            "orderId": self.tracking_order_id,
            "currentLocation": self._current.to_api() if self._current else None,
            "distanceKm": self.distance_to_destination_km,
            "lastUploadedLocation": self._last_uploaded_api(),
            "uploadsCount": self.uploads_count,
            "errorsCount": self.errors_count,
            "uploadGate": self._throttle.gate,
        }

    def _last_uploaded_api(self) -> Optional[dict]:
        if self._order is None:
            return None
        last = self._throttle.last_uploaded(self._order.id)
        return last.to_api() if last else None

    # ── Lifecycle ───────────────────────────────────────────────────

    async def start(self, order: Order) -> None:
        """Begin tracking order (restarts if another order was tracked)."""
        if self._state is TrackerState.TRACKING:
            await self.stop()

        self._order = order
        self._current = None
        self._state = TrackerState.TRACKING
        self._generation += 1
        self._throttle.reset(order.id)
        self._task = asyncio.create_task(self._sampling_loop(self._generation))
        logger.info(f"Location tracking started for order {order.id}")

    async def stop(self) -> None:
        """Stop tracking. Safe to call any number of times."""
        if self._state is TrackerState.IDLE and self._task is None:
            return

        order_id = self.tracking_order_id
        self._state = TrackerState.IDLE
        self._generation += 1
        self._order = None
        task, self._task = self._task, None

        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info(f"Location tracking stopped (order {order_id})")

    async def sync_with_order(self, order: Optional[Order]) -> None:
        """
        Align the tracker with an order's latest status.

        Tracked statuses start (or keep) tracking; any other status stops
        tracking if it is the order being tracked.
        """
        if order is not None and order.status in TRACKED_STATUSES:
            if self.is_tracking and self._order.id == order.id:
                self._order = order
                return
            await self.start(order)
            return

        if order is None or order.id == self.tracking_order_id:
            await self.stop()

    # ── Sampling ────────────────────────────────────────────────────

    async def _sampling_loop(self, generation: int) -> None:
        while generation == self._generation:
            try:
                sample = await self._provider.current_position()
            except LocationProviderError as e:
                self.errors_count += 1
                logger.warning(f"Position unavailable: {e}")
            else:
                await self.handle_sample(sample, generation)
            await asyncio.sleep(self._sample_interval)

    async def handle_sample(self, sample: LocationSample, generation: Optional[int] = None) -> bool:
        """
        Process one sample. Returns True if an upload was attempted.

        Samples arriving while IDLE, or from a cancelled tracking session,
        are ignored.
        """
        if not self.is_tracking or self._order is None:
            return False
        if generation is not None and generation != self._generation:
            return False

        self._current = sample
        order_id = self._order.id
        if not self._throttle.check(order_id, sample):
            return False

        try:
            await self._repository.update_location(order_id, sample.latitude, sample.longitude, sample.address)
            self.uploads_count += 1
        except AppError as e:
            # Tracking must survive a failed upload
            self.errors_count += 1
            logger.warning(f"Location upload failed for order {order_id}: {e.message}")
        return True
