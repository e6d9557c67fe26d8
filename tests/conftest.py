"""
Pytest configuration and shared fixtures for the Shiv Dhaba client tests.

Provides an in-memory SQLite local store, a fake REST backend mounted via
httpx.ASGITransport, and pre-wired repositories for a signed-in delivery
partner.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest
import httpx
from typing import AsyncGenerator

from api_client import ApiClient
from config import Settings
from database import create_engine, init_db, make_session_factory
from models import AuthResponse, LocationSample
from services.location_service import LocationTracker, ReplayLocationProvider
from services.order_repository import DeliveryOrderRepository
from services.storage_service import KeyValueStore
from services.token_store import TokenStore
from services.view_state import OrderViewState
from utils.throttle import UploadThrottle
from tests.fake_backend import FakeBackend

BASE_URL = "http://testserver/api/v1"


def sample(lat: float = 28.9845, lon: float = 77.7064, ts: int = 0, **kwargs) -> LocationSample:
    """Build a LocationSample; ts is epoch milliseconds."""
    return LocationSample(latitude=lat, longitude=lon, timestamp=ts, **kwargs)


# ── Settings ─────────────────────────────────────────────────────────


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        api_base_url=BASE_URL,
        local_db_url="sqlite:///:memory:",
        location_sample_interval_seconds=0.01,
        location_upload_gate="interval",
        location_update_interval_seconds=10,
        environment="test",
    )


# ── Local store ──────────────────────────────────────────────────────


@pytest.fixture
async def engine():
    """In-memory SQLite engine with the key-value table created."""
    engine = create_engine("sqlite:///:memory:")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def storage(engine) -> KeyValueStore:
    return KeyValueStore(make_session_factory(engine))


@pytest.fixture
async def token_store(storage) -> TokenStore:
    return TokenStore(storage)


# ── Fake backend ─────────────────────────────────────────────────────


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def transport(backend) -> httpx.ASGITransport:
    return httpx.ASGITransport(app=backend.app)


@pytest.fixture
async def logged_in(backend, token_store) -> TokenStore:
    """Token store holding a delivery partner session issued by the fake backend."""
    await token_store.set_session(AuthResponse.model_validate(backend.login()))
    return token_store


@pytest.fixture
async def api_client(logged_in, test_settings, transport) -> AsyncGenerator[ApiClient, None]:
    client = ApiClient(logged_in, settings=test_settings, transport=transport)
    yield client
    await client.aclose()


# ── Delivery side ────────────────────────────────────────────────────


@pytest.fixture
def delivery_repo(api_client) -> DeliveryOrderRepository:
    return DeliveryOrderRepository(api_client)


@pytest.fixture
def order_view() -> OrderViewState:
    return OrderViewState()


@pytest.fixture
def provider() -> ReplayLocationProvider:
    return ReplayLocationProvider([sample(ts=0)])


@pytest.fixture
async def location_tracker(provider, delivery_repo) -> AsyncGenerator[LocationTracker, None]:
    tracker = LocationTracker(provider, delivery_repo, UploadThrottle("interval", 10_000), sample_interval=0.01)
    yield tracker
    await tracker.stop()
