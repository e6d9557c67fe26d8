"""
Auth Service — OTP login for delivery partners and admins.

OTP issuance and verification happen on the server; this service validates
input, calls the endpoints unauthenticated and hands the resulting session
to the TokenStore.
"""
import logging

from api_client import ApiClient
from domain.constants import (
    AUTH_ADMIN_SEND_OTP,
    AUTH_ADMIN_VERIFY_OTP,
    AUTH_SEND_OTP,
    AUTH_VERIFY_DELIVERY_OTP,
)
from domain.responses import parse_model
from models import AuthResponse, UserProfile
from services.token_store import TokenStore
from utils.validators import validate_email_or_phone, validate_mobile_number, validate_otp

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, client: ApiClient, token_store: TokenStore):
        self._client = client
        self._tokens = token_store

    # ── Delivery partner ────────────────────────────────────────────

    async def send_otp(self, mobile: str) -> dict:
        mobile = validate_mobile_number(mobile)
        data = await self._client.post(AUTH_SEND_OTP, json={"mobile": mobile}, authenticated=False)
        logger.info(f"OTP requested for ******{mobile[-4:]}")
        return data or {}

    async def verify_delivery_otp(self, mobile: str, otp: str) -> UserProfile:
        payload = {"mobile": validate_mobile_number(mobile), "otp": validate_otp(otp)}
        return await self._login(AUTH_VERIFY_DELIVERY_OTP, payload)

    # ── Admin ───────────────────────────────────────────────────────

    async def send_admin_otp(self, email_or_phone: str) -> dict:
        target = validate_email_or_phone(email_or_phone)
        data = await self._client.post(AUTH_ADMIN_SEND_OTP, json={"emailOrPhone": target}, authenticated=False)
        return data or {}

    async def verify_admin_otp(self, email_or_phone: str, otp: str) -> UserProfile:
        payload = {"emailOrPhone": validate_email_or_phone(email_or_phone), "otp": validate_otp(otp)}
        return await self._login(AUTH_ADMIN_VERIFY_OTP, payload)

    # ── Session ─────────────────────────────────────────────────────

    async def _login(self, path: str, payload: dict) -> UserProfile:
        data = await self._client.post(path, json=payload, authenticated=False)
        auth = parse_model(AuthResponse, data)
        await self._tokens.set_session(auth)
        return auth.user

    async def restore_session(self) -> bool:
        """Load a persisted session at app start."""
        restored = await self._tokens.load()
        if restored:
            logger.info(f"Restored session for user {self._tokens.user.id}")
        return restored

    async def logout(self) -> None:
        """
        End the session the same way a refused token refresh does, so the
        on_logout hook stops tracking and clears cached view state.
        """
        await self._client.end_session()
        logger.info("Logged out")
