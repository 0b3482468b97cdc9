"""
Test fixtures for the Ledger API test suite.

This module provides shared fixtures used across all test files:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - session_factory: Sessions bound to the test engine, for direct inserts
  - owner_id / other_owner_id: Two unrelated owners
  - category / second_category / other_category: Categories; the last
    belongs to other_owner_id
  - transaction_engine: TransactionEngine over the test session
  - client: Async HTTP test client (unauthenticated)
  - authenticated_client: Test client carrying a JWT for owner_id
  - token_for: Builds a bearer header for any owner

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation.
    Each test gets a completely fresh database.
  - We override FastAPI's get_db dependency to inject test sessions, so the
    application code works exactly as it does in production.
  - Tokens are minted with create_access_token; issuing them is the auth
    service's job and is not exercised here.
"""

import os
import uuid

# Required settings must exist before ledger_api is imported
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("ENCRYPTION_KEY", "test-encryption-key-not-for-production")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from ledger_api.database import Base, get_db
from ledger_api.main import app
from ledger_api.models.category import Category
from ledger_api.repositories.transaction_repository import SqlAlchemyTransactionRepository
from ledger_api.security import create_access_token
from ledger_api.services.transaction_service import TransactionEngine


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Provide an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def owner_id():
    return uuid.uuid4()


@pytest.fixture
def other_owner_id():
    return uuid.uuid4()


async def _insert_category(session_factory, owner, name, color):
    async with session_factory() as session:
        category = Category(owner_id=owner, name=name, color=color)
        session.add(category)
        await session.commit()
        return category


@pytest_asyncio.fixture
async def category(session_factory, owner_id):
    """A category owned by owner_id, committed before the test runs."""
    return await _insert_category(session_factory, owner_id, "housing", "#ff8800")


@pytest_asyncio.fixture
async def second_category(session_factory, owner_id):
    return await _insert_category(session_factory, owner_id, "leisure", "#00aaff")


@pytest_asyncio.fixture
async def other_category(session_factory, other_owner_id):
    """A category that belongs to someone else."""
    return await _insert_category(session_factory, other_owner_id, "salary", "#22cc22")


@pytest.fixture
def transaction_engine(db_session, category):
    """Service-level engine over the test session."""
    return TransactionEngine(SqlAlchemyTransactionRepository(db_session))


@pytest.fixture
def token_for():
    def _headers(owner):
        token = create_access_token({"sub": str(owner)})
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest_asyncio.fixture
async def client(session_factory):
    """
    Async HTTP test client with the test database injected.

    This overrides the get_db dependency so all requests hit the
    in-memory test database instead of the real one.
    """
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def authenticated_client(client, owner_id, category, token_for):
    """Test client authenticated as owner_id (who owns `category`)."""
    client.headers.update(token_for(owner_id))
    return client
