"""Shared test fixtures and configuration."""
import asyncio
import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

# Set test environment variables before importing app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RESTAURANT_NAME", "Test Restaurant")

from tableside.main import app
from tableside.core.dependencies import get_cart_store, get_menu_repository, get_order_feed
from tableside.db.database import get_db
from tableside.db.models import Base
from tableside.services.cart.store import InMemoryKeyValueStore
from tableside.services.feed.broker import OrderFeed
from tableside.services.menu.in_memory_menu import InMemoryMenuProvider
from tableside.services.menu.repository import MenuRepository
from tableside.services.persistence.orders import OrderRepository
from tableside.services.persistence.restaurants import RestaurantRepository, TableRepository
from tests.helpers import seed_restaurants


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def test_db(test_db_engine):
    """Create test database session with seeded restaurants and tables."""
    async_session = async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        await seed_restaurants(session)
        yield session


@pytest.fixture
def test_menu_path():
    """Return path to test menu YAML file."""
    return Path(__file__).parent / "fixtures" / "test_menu.yaml"


@pytest.fixture
def test_menu_repository(test_menu_path):
    """Create menu repository with test data."""
    provider = InMemoryMenuProvider(menu_file=str(test_menu_path))
    return MenuRepository(provider)


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def feed():
    return OrderFeed()


@pytest.fixture
def order_repository(test_db, feed):
    return OrderRepository(test_db, feed=feed)


@pytest.fixture
def restaurant_repository(test_db):
    return RestaurantRepository(test_db)


@pytest.fixture
def table_repository(test_db):
    return TableRepository(test_db)


@pytest.fixture
def test_client(tmp_path, test_menu_repository):
    """
    Create FastAPI test client with overrides.

    The app runs on the client's own event loop, so it gets a file-backed
    database without pooling instead of the in-memory engine above.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'tableside-test.db'}",
        poolclass=NullPool,
    )
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def _prepare():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        async with session_factory() as session:
            await seed_restaurants(session)

    asyncio.run(_prepare())

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    store = InMemoryKeyValueStore()
    client_feed = OrderFeed()
    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_menu_repository] = lambda: test_menu_repository
    app.dependency_overrides[get_cart_store] = lambda: store
    app.dependency_overrides[get_order_feed] = lambda: client_feed

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
    asyncio.run(engine.dispose())
