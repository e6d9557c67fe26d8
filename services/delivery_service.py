"""
Delivery Status Service — duty/availability toggles and push token.

The push token is remembered in the local store once the server has it, so
an app restart can tell whether it needs registering again.
"""
import logging
from typing import Optional

from api_client import ApiClient
from domain.constants import DELIVERY_FCM_TOKEN, DELIVERY_STATUS, STORAGE_FCM_TOKEN
from domain.errors import ValidationError
from domain.responses import parse_model
from models import DeliveryBoyStatus
from services.storage_service import KeyValueStore

logger = logging.getLogger(__name__)


class DeliveryStatusService:
    def __init__(self, client: ApiClient, storage: Optional[KeyValueStore] = None):
        self._client = client
        self._storage = storage
        self.status: DeliveryBoyStatus | None = None

    async def update_status(self, is_available: bool, is_on_duty: bool) -> DeliveryBoyStatus:
        """
        PUT /delivery/status with query params.

        Available-but-off-duty is allowed through; the server decides.
        """
        if is_available and not is_on_duty:
            logger.warning("Marking partner available while off duty")
        data = await self._client.put(
            DELIVERY_STATUS,
            params={"isAvailable": str(is_available).lower(), "isOnDuty": str(is_on_duty).lower()},
        )
        if data is None:
            data = {"isAvailable": is_available, "isOnDuty": is_on_duty}
        self.status = parse_model(DeliveryBoyStatus, data)
        logger.info(f"Duty status: available={self.status.is_available} on_duty={self.status.is_on_duty}")
        return self.status

    async def update_fcm_token(self, fcm_token: str) -> None:
        if not fcm_token:
            raise ValidationError("FCM token is required", code="missing_fcm_token")
        await self._client.put(DELIVERY_FCM_TOKEN, params={"fcmToken": fcm_token})
        if self._storage is not None:
            await self._storage.set_json(STORAGE_FCM_TOKEN, fcm_token)

    async def registered_fcm_token(self) -> Optional[str]:
        """Last push token the server accepted, if any."""
        if self._storage is None:
            return None
        return await self._storage.get_json(STORAGE_FCM_TOKEN)
