"""
Token Store — access/refresh tokens and the signed-in user's profile.

Lifecycle:
    login   → set_session()
    refresh → set_tokens()
    logout  → clear()

Values are cached in memory and written through to the local key-value
store so a session survives an app restart (restored with load()).
"""
import logging
import time
from typing import Optional

import jwt
from pydantic import ValidationError as PydanticValidationError

from domain.constants import STORAGE_ACCESS_TOKEN, STORAGE_REFRESH_TOKEN, STORAGE_USER_PROFILE
from models import AuthResponse, UserProfile
from services.storage_service import KeyValueStore

logger = logging.getLogger(__name__)

SESSION_KEYS = [STORAGE_ACCESS_TOKEN, STORAGE_REFRESH_TOKEN, STORAGE_USER_PROFILE]


def token_expiry(token: Optional[str]) -> Optional[float]:
    """
    Read the `exp` claim of a JWT without verifying it.

    The client cannot verify the signature (it has no key); the value is
    only used to refresh early. Opaque tokens return None.
    """
    if not token:
        return None
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    exp = claims.get("exp")
    return float(exp) if isinstance(exp, (int, float)) else None


class TokenStore:
    """Holds the current session. One instance per client."""

    def __init__(self, storage: KeyValueStore):
        self._storage = storage
        self._access_token: Optional[str] = None
        self._refresh_token: Optional[str] = None
        self._user: Optional[UserProfile] = None

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    @property
    def refresh_token(self) -> Optional[str]:
        return self._refresh_token

    @property
    def user(self) -> Optional[UserProfile]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return bool(self._access_token and self._user)

    async def load(self) -> bool:
        """Restore a persisted session. Returns True if one was found."""
        self._access_token = await self._storage.get_json(STORAGE_ACCESS_TOKEN)
        self._refresh_token = await self._storage.get_json(STORAGE_REFRESH_TOKEN)
        raw_user = await self._storage.get_json(STORAGE_USER_PROFILE)
        self._user = None
        if raw_user:
            try:
                self._user = UserProfile.model_validate(raw_user)
            except PydanticValidationError as e:
                logger.error(f"Stored user profile is unreadable, ignoring it: {e}")
        return self.is_authenticated

    async def set_session(self, auth: AuthResponse) -> None:
        """Store tokens and profile after a successful login."""
        self._user = auth.user
        await self.set_tokens(auth.access_token, auth.refresh_token)
        await self._storage.set_json(STORAGE_USER_PROFILE, auth.user.to_api())
        logger.info(f"Session started for user {auth.user.id} ({auth.user.role})")

    async def set_tokens(self, access_token: str, refresh_token: Optional[str]) -> None:
        self._access_token = access_token
        if refresh_token:
            self._refresh_token = refresh_token
        await self._storage.set_json(STORAGE_ACCESS_TOKEN, self._access_token)
        await self._storage.set_json(STORAGE_REFRESH_TOKEN, self._refresh_token)

    async def clear(self) -> None:
        """Forget the session in memory and on disk."""
        self._access_token = None
        self._refresh_token = None
        self._user = None
        await self._storage.clear(SESSION_KEYS)
        logger.info("Session cleared")

    def expires_within(self, seconds: float) -> bool:
        """True if the access token is a JWT expiring in the next `seconds`."""
        exp = token_expiry(self._access_token)
        if exp is None:
            return False
        return exp - time.time() <= seconds
