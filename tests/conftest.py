"""
Test configuration and fixtures.

Provides:
- Initialized JSON (tmp_path) and in-memory storage backends
- A ``storage`` fixture parametrized over both backends
- Seed records (client, stakeholder, goal) created through the services
- HTTPX AsyncClient bound to an app using the JSON backend
"""
from datetime import timedelta
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from caretrack.core.config import Settings
from caretrack.db.models import Client, Goal, Stakeholder
from caretrack.main import create_app
from caretrack.services import client_service, goal_service, stakeholder_service
from caretrack.storage import InMemoryStorage, JsonStorage, StorageProvider
from caretrack.utils.dates import today_utc


# =============================================================================
# Storage Fixtures
# =============================================================================

@pytest.fixture
async def json_storage(tmp_path) -> AsyncGenerator[JsonStorage, None]:
    storage = JsonStorage(
        tmp_path / "data",
        lock_retries=5,
        lock_min_timeout=0.01,
        lock_max_timeout=0.05,
    )
    await storage.initialize()
    yield storage
    await storage.close()


@pytest.fixture
async def memory_storage() -> AsyncGenerator[InMemoryStorage, None]:
    storage = InMemoryStorage()
    await storage.initialize()
    yield storage
    await storage.close()


@pytest.fixture(params=["json", "memory"])
async def storage(request, tmp_path) -> AsyncGenerator[StorageProvider, None]:
    """Each test using this fixture runs once per backend."""
    if request.param == "json":
        backend: StorageProvider = JsonStorage(
            tmp_path / "data", lock_min_timeout=0.01, lock_max_timeout=0.05
        )
    else:
        backend = InMemoryStorage()
    await backend.initialize()
    yield backend
    await backend.close()


# =============================================================================
# Seed Records
# =============================================================================

@pytest.fixture
async def client(json_storage: JsonStorage) -> Client:
    return await client_service.create_client(
        json_storage,
        {"name": "Jordan Lee", "date_of_birth": "1990-01-01", "ndis_number": "43000000001"},
    )


@pytest.fixture
async def stakeholder(json_storage: JsonStorage) -> Stakeholder:
    return await stakeholder_service.create_stakeholder(
        json_storage,
        {"name": "Sam Carter", "role": "support_worker", "email": "sam@example.org"},
    )


@pytest.fixture
async def goal(json_storage: JsonStorage, client: Client) -> Goal:
    return await goal_service.create_goal(
        json_storage,
        {
            "client_id": client.id,
            "title": "Cook a weekly meal",
            "description": "Plan, shop for and cook one meal each week",
            "category": "daily_living",
            "target_date": (today_utc() + timedelta(days=90)).isoformat(),
        },
    )


# =============================================================================
# API Fixtures
# =============================================================================

@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        ENV="test",
        STORAGE_TYPE="json",
        DATA_DIR=str(tmp_path / "data"),
        LOCK_MIN_TIMEOUT=0.01,
        LOCK_MAX_TIMEOUT=0.05,
    )


@pytest.fixture
async def api_client(
    test_settings: Settings,
    json_storage: JsonStorage,
) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient for the tools API.

    ASGITransport does not run the lifespan, so the app is handed the
    already-initialized storage directly.
    """
    app = create_app(test_settings, storage=json_storage)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c
