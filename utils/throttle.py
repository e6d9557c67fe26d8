"""
Upload throttle for location samples.

Decides whether a position sample should be sent to the server. Exactly one
gate is active, chosen by configuration:

    interval      — at most one upload per order every N milliseconds,
                    measured on the samples' own timestamps
    displacement  — upload only after moving at least N metres from the
                    last uploaded position

Tracks the last accepted upload per order id. Not shared across processes.
"""
import logging
from typing import Optional

from models import LocationSample
from utils.geo import haversine_m

logger = logging.getLogger(__name__)


class UploadThrottle:
    """Per-order upload gate."""

    def __init__(self, gate: str = "interval", interval_ms: float = 10_000, min_displacement_m: float = 10.0):
        if gate not in ("interval", "displacement"):
            raise ValueError(f"Unknown upload gate: {gate!r}")
        self.gate = gate
        self.interval_ms = interval_ms
        self.min_displacement_m = min_displacement_m
        # {order_id: last uploaded sample}
        self._last: dict[int, LocationSample] = {}

    def check(self, order_id: int, sample: LocationSample) -> bool:
        """
        Check if this sample may be uploaded, and record it if so.

        The first sample of an order always passes.

        Returns:
            True if the caller should upload, False if throttled
        """
        last = self._last.get(order_id)
        if last is not None and not self._passes(last, sample):
            logger.debug(f"Location upload for order {order_id} throttled ({self.gate} gate)")
            return False
        self._last[order_id] = sample
        return True

    def _passes(self, last: LocationSample, sample: LocationSample) -> bool:
        if self.gate == "interval":
            return sample.timestamp - last.timestamp >= self.interval_ms
        moved = haversine_m(last.latitude, last.longitude, sample.latitude, sample.longitude)
        return moved >= self.min_displacement_m

    def last_uploaded(self, order_id: int) -> Optional[LocationSample]:
        return self._last.get(order_id)

    def reset(self, order_id: Optional[int] = None) -> None:
        """Forget history for one order, or for all of them."""
        if order_id is None:
            self._last.clear()
        else:
            self._last.pop(order_id, None)
