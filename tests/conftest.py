"""
Test configuration and fixtures.

Services are exercised against both store implementations; HTTP tests drive
the FastAPI app in-process with the store and GeoIP dependencies overridden.
"""

import asyncio
import os

# Settings are read at import time by several modules
os.environ["STORE_BACKEND"] = "memory"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["GEOIP_API_ENABLED"] = "false"
os.environ["GEOIP_DATABASE_PATH"] = ""
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BASE_URL"] = "https://lnk.test"

import httpx
import pytest

from linkly.core.database import build_engine, build_session_factory, init_db
from linkly.core.deps import get_geoip_service, get_store
from linkly.core.security import create_access_token
from linkly.main import app
from linkly.services import (
    AnalyticsAggregator,
    GeoLocation,
    IdentifierAllocator,
    LinkLifecycleManager,
    ResolutionEngine,
)
from linkly.stores import MemoryLinkStore, SQLLinkStore


class FakeGeoIP:
    """Stands in for GeoIPService with a fixed IP -> location table."""

    def __init__(self, locations: dict[str, GeoLocation] | None = None):
        self.locations = locations or {}
        self.calls: list[str | None] = []

    async def lookup(self, ip_address: str | None) -> GeoLocation:
        self.calls.append(ip_address)
        # Yield to the loop like a real lookup would
        await asyncio.sleep(0)
        return self.locations.get(ip_address or "", GeoLocation())

    async def close(self) -> None:
        pass


@pytest.fixture
def memory_store():
    return MemoryLinkStore()


@pytest.fixture
async def sql_store(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'links.db'}")
    await init_db(engine)
    store = SQLLinkStore(build_session_factory(engine), engine=engine)
    yield store
    await store.close()


@pytest.fixture(params=["memory", "sql"])
async def store(request, tmp_path):
    """Every service test runs once per store implementation."""
    if request.param == "memory":
        yield MemoryLinkStore()
        return

    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'links.db'}")
    await init_db(engine)
    sql = SQLLinkStore(build_session_factory(engine), engine=engine)
    yield sql
    await sql.close()


@pytest.fixture
def geoip():
    return FakeGeoIP(
        {
            "8.8.8.8": GeoLocation(country="US", city="Mountain View"),
            "81.2.69.142": GeoLocation(country="GB", city="London"),
        }
    )


@pytest.fixture
def allocator(store):
    return IdentifierAllocator(store)


@pytest.fixture
def lifecycle(store, allocator):
    return LinkLifecycleManager(store, allocator)


@pytest.fixture
def resolver(store, geoip):
    return ResolutionEngine(store, geoip)


@pytest.fixture
def aggregator(store):
    return AnalyticsAggregator(store)


@pytest.fixture
async def client(memory_store, geoip):
    """HTTP client bound to the app with an in-memory store."""
    app.dependency_overrides[get_store] = lambda: memory_store
    app.dependency_overrides[get_geoip_service] = lambda: geoip

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token('user-1')}"}


@pytest.fixture
def other_auth_headers():
    return {"Authorization": f"Bearer {create_access_token('user-2')}"}
