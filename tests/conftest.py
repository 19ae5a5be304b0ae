"""Pytest configuration and fixtures."""
import os
from datetime import datetime, timedelta

os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient
from motor.motor_asyncio import AsyncIOMotorClient

from pulseboard.config import settings


class FakeClock:
    """Controllable replacement for ``utcnow``."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0, **kwargs) -> datetime:
        self.now += timedelta(seconds=seconds, **kwargs)
        return self.now


@pytest.fixture
def mock_db():
    """In-memory Motor-compatible database for service tests."""
    return AsyncMongoMockClient()[f"{settings.mongodb_db_name}_unit"]


@pytest.fixture
def clock():
    """Clock frozen at a Wednesday morning, advanced by hand."""
    return FakeClock(datetime(2025, 11, 5, 10, 0, 0))


@pytest_asyncio.fixture
async def test_db():
    """
    Clean MongoDB test database with the app's indexes.

    This fixture:
    - Points the app's database holder at a throwaway test database
    - Creates the indexes the service relies on
    - Drops the test database afterwards
    """
    from pulseboard.database import database

    test_client = AsyncIOMotorClient(settings.mongodb_url)
    test_db_name = f"{settings.mongodb_db_name}_test"
    await test_client.drop_database(test_db_name)

    original_db = database.db
    database.db = test_client[test_db_name]
    await database.ensure_indexes()

    yield database.db

    await test_client.drop_database(test_db_name)
    database.db = original_db
    test_client.close()


@pytest_asyncio.fixture
async def app_client(test_db):
    """HTTP client for the app, backed by the test database."""
    from pulseboard.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.fixture
def login_as(app_client):
    """Factory that registers and logs in a user, returning bearer headers."""

    async def _login(email: str) -> dict:
        await app_client.post(
            "/auth/register",
            json={"email": email, "password": "password123", "name": "Test User"},
        )
        response = await app_client.post(
            "/auth/login",
            json={"email": email, "password": "password123"},
        )
        token = response.json()["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return _login


@pytest_asyncio.fixture
async def auth_headers(login_as):
    """Bearer headers for a freshly registered user."""
    return await login_as("owner@example.com")
