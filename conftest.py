import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool

# Load .env.test if present, then pin the test environment before any settings
# object is built. Tests run against a throwaway in-memory SQLite database
# unless TEST_DATABASE_URL points somewhere else.
from dotenv import load_dotenv

env_test_path = os.path.join(os.path.dirname(__file__), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path, override=True)

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")

from libs.common.config import get_settings  # noqa: E402
from libs.db.base import Base  # noqa: E402
from libs.db.session import get_async_db  # noqa: E402

# Import all models so metadata includes every table
from services.catalog_service import models as _catalog_models  # noqa: E402,F401
from services.ledger_service import models as _ledger_models  # noqa: E402,F401
from services.orders_service import models as _orders_models  # noqa: E402,F401

# Clear cached settings to reload with new env vars
get_settings.cache_clear()
settings = get_settings()


@pytest_asyncio.fixture
async def test_engine():
    """
    Create a fresh database for one test.

    In-memory SQLite needs a single shared connection (StaticPool) so every
    session sees the same database.
    """
    if settings.is_sqlite:
        engine = create_async_engine(
            settings.DATABASE_URL,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_async_engine(settings.DATABASE_URL, future=True)

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except OperationalError:
        await engine.dispose()
        pytest.skip("Database not available for tests")

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a session configured like the application's.

    Operations commit for real; isolation comes from the per-test database.
    """
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


def _bind_session(app, db_session: AsyncSession) -> None:
    async def _override_db():
        # Mirrors get_async_db: failed requests discard uncommitted work
        try:
            yield db_session
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_async_db] = _override_db


async def _client_for(app, db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    _bind_session(app, db_session)
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def orders_client(db_session) -> AsyncGenerator[AsyncClient, None]:
    from services.orders_service.app.main import app

    async for ac in _client_for(app, db_session):
        yield ac


@pytest_asyncio.fixture
async def ledger_client(db_session) -> AsyncGenerator[AsyncClient, None]:
    from services.ledger_service.app.main import app

    async for ac in _client_for(app, db_session):
        yield ac


@pytest_asyncio.fixture
async def catalog_client(db_session) -> AsyncGenerator[AsyncClient, None]:
    from services.catalog_service.app.main import app

    async for ac in _client_for(app, db_session):
        yield ac
