"""
SQLAlchemy ORM models for the local device store.

Tables:
    kv_entries — JSON values keyed by storage key (tokens, profile, cart,
                 saved addresses)
"""
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text

from database import Base


class KeyValueEntry(Base):
    """One persisted value. `value` is a JSON document."""
    __tablename__ = "kv_entries"

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
