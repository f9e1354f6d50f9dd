"""Pytest fixtures for backend tests."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  (registers mappers)
from app.core.security import get_password_hash
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models.user import User
from app.services.lockout import LockoutEvaluator
from app.services.login_guard import LoginGuard
from app.services.login_ledger import AttemptLedger

# In-memory SQLite shared by every session of one test
TEST_DATABASE_URL = "sqlite+aiosqlite://"

TEST_MAX_ATTEMPTS = 5
TEST_LOCKOUT_DURATION = timedelta(minutes=15)
TEST_PASSWORD = "Sup3r$ecret"


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, value: datetime) -> datetime:
        self.now = value
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=UTC))


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a fresh in-memory database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def test_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def ledger(session_factory, clock) -> AttemptLedger:
    return AttemptLedger(session_factory, clock=clock)


@pytest.fixture
def evaluator(ledger) -> LockoutEvaluator:
    return LockoutEvaluator(ledger, max_attempts=TEST_MAX_ATTEMPTS, lockout_duration=TEST_LOCKOUT_DURATION)


@pytest.fixture
def login_guard(ledger, evaluator, clock) -> LoginGuard:
    return LoginGuard(ledger, evaluator, clock=clock)


@pytest_asyncio.fixture(scope="function")
async def test_user(test_session: AsyncSession) -> User:
    """Create a registered forum user."""
    user = User(
        username="alice",
        password_hash=get_password_hash(TEST_PASSWORD),
        display_name="Alice",
    )
    test_session.add(user)
    await test_session.commit()
    await test_session.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def client(test_session: AsyncSession, login_guard: LoginGuard) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client whose requests come from 203.0.113.5."""
    async def override():
        yield test_session

    app.dependency_overrides[get_db] = override
    app.state.login_guard = login_guard

    async with AsyncClient(
        transport=ASGITransport(app=app, client=("203.0.113.5", 50000)),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
    del app.state.login_guard
