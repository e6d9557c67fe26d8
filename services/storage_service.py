"""
Storage Service — persistent key-value store on the device.

Backs the cart, saved addresses, session tokens and user profile. Values are
JSON documents in a single SQLite table.

Failure policy:
    - read failures are logged and return the caller's default
    - write failures are logged and return False
Nothing here ever raises into the UI layer.
"""
import json
import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from db_models import KeyValueEntry

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Async JSON key-value store over an injected session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_json(self, key: str, default: Any = None) -> Any:
        """Return the decoded value for key, or default if missing/unreadable."""
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(KeyValueEntry).where(KeyValueEntry.key == key))
                entry = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Storage read failed for {key}: {e}")
            return default

        if entry is None:
            return default
        try:
            return json.loads(entry.value)
        except (TypeError, ValueError) as e:
            logger.error(f"Storage value for {key} is corrupt, using default: {e}")
            return default

    async def set_json(self, key: str, value: Any) -> bool:
        """Persist value under key. Returns False (and logs) on failure."""
        try:
            encoded = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"Storage value for {key} is not serializable: {e}")
            return False

        try:
            async with self._session_factory() as db:
                entry = await db.get(KeyValueEntry, key)
                if entry:
                    entry.value = encoded
                    entry.updated_at = datetime.utcnow()
                else:
                    db.add(KeyValueEntry(key=key, value=encoded))
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Storage write failed for {key}: {e}")
            return False
        return True

    async def remove(self, key: str) -> bool:
        try:
            async with self._session_factory() as db:
                await db.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Storage remove failed for {key}: {e}")
            return False
        return True

    async def clear(self, keys: Optional[list[str]] = None) -> bool:
        """Remove the given keys, or everything when keys is None."""
        try:
            async with self._session_factory() as db:
                stmt = delete(KeyValueEntry)
                if keys is not None:
                    stmt = stmt.where(KeyValueEntry.key.in_(keys))
                await db.execute(stmt)
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Storage clear failed: {e}")
            return False
        return True
