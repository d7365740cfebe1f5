"""Pytest fixtures for testing."""
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from api.main import create_app
from core.config import Settings
from db.session import Storage
from services.content_service import ContentService
from services.tag_service import TagService


@pytest.fixture
def settings() -> Settings:
    """Settings for an isolated in-memory database, ignoring any local .env."""
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite+aiosqlite://",
        API_PREFIX="/api",
        STATIC_DIR="tests/__no_static__",
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
async def storage(settings: Settings) -> AsyncGenerator[Storage]:
    """
    Create a fresh in-memory database with the schema for each test.

    Every test gets its own engine, so tests don't affect each other.
    """
    storage = Storage(settings.database_url)
    await storage.create_schema()
    yield storage
    await storage.dispose()


@pytest.fixture
def tag_service(storage: Storage) -> TagService:
    """Tag service bound to the test storage."""
    return TagService(storage)


@pytest.fixture
def content_service(storage: Storage, tag_service: TagService) -> ContentService:
    """Content service bound to the test storage."""
    return ContentService(storage, tag_service)


@pytest.fixture
async def client(
    settings: Settings,
    storage: Storage,
) -> AsyncGenerator[AsyncClient]:
    """Create a test client serving the app on the test storage."""
    app = create_app(settings, storage)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client
