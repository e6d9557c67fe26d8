"""
Local device store engine and session management.

Uses SQLAlchemy async engine with aiosqlite so reads and writes of cart,
addresses and session tokens never block the event loop. The engine is
created by the composition root and passed down; nothing here is global.
"""
import logging
import os

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

MEMORY_URL = "sqlite:///:memory:"


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


def to_async_url(url: str) -> str:
    """Convert sqlite:///... → sqlite+aiosqlite:///... for the async driver."""
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return url


def create_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Build the async engine, creating the parent directory of a file DB."""
    async_url = to_async_url(url)
    prefix = "sqlite+aiosqlite:///"
    if async_url.startswith(prefix) and ":memory:" not in async_url:
        directory = os.path.dirname(async_url[len(prefix):])
        if directory:
            os.makedirs(directory, exist_ok=True)
    if ":memory:" in async_url:
        # One shared connection, otherwise every session sees an empty database
        return create_async_engine(
            async_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(async_url, echo=echo, future=True)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables. Called once when the client opens."""
    # Import models so Base.metadata knows about them
    import db_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Local store tables created (or already exist)")


async def open_store(url: str, echo: bool = False) -> AsyncEngine:
    """
    Engine for the local store with its tables created.

    A store that cannot be opened (bad path, unwritable directory, broken
    file) is logged and replaced by an in-memory one, so the client starts
    with an empty session and cart instead of failing.
    """
    try:
        engine = create_engine(url, echo=echo)
    except OSError as e:
        logger.error(f"Local store path unusable ({url}): {e}")
    else:
        try:
            await init_db(engine)
            return engine
        except (OSError, SQLAlchemyError) as e:
            logger.error(f"Local store could not be opened ({url}): {e}")
            await engine.dispose()

    logger.warning("Falling back to an in-memory local store; nothing will persist")
    engine = create_engine(MEMORY_URL, echo=echo)
    await init_db(engine)
    return engine
