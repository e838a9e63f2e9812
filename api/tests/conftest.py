"""API test configuration."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from api.dependencies import get_current_user, get_db, get_rate_limiter
from api.main import create_app
from api.routers.stripe_webhook import get_lookup_policy
from api.services.billing_webhooks import CustomerLookupPolicy
from api.services.rate_limiter import RateLimiter
from bragfeed.models import Base, User
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


class FakeClock:
    """Settable clock for rate-limit windows."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


async def _no_sleep(_interval: float) -> None:
    return None


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def mock_db():
    """Creates a mock AsyncSession with common patterns pre-configured."""
    session = AsyncMock()
    # AsyncSession.add() is synchronous; use MagicMock to avoid un-awaited coroutine warnings.
    session.add = MagicMock()
    empty_result = MagicMock()
    empty_result.scalars.return_value.all.return_value = []
    empty_result.scalars.return_value.first.return_value = None
    empty_result.scalar.return_value = 0
    empty_result.all.return_value = []
    session.execute.return_value = empty_result
    session.get.return_value = None
    return session


@pytest.fixture
async def client(app, mock_db):
    async def _override_db():
        yield mock_db

    app.dependency_overrides[get_db] = _override_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'bragfeed.db'}")
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def user(session_factory):
    async with session_factory() as session:
        account = User(email="owner@bragfeed.test", display_name="Owner")
        session.add(account)
        await session.commit()
    return account


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def lookup_policy():
    return CustomerLookupPolicy(attempts=3, interval=0, sleep=_no_sleep)


@pytest.fixture
async def db_client(app, session_factory, user, clock, lookup_policy):
    """Client backed by the SQLite database, authenticated as ``user``."""

    async def _override_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _override_user(db: AsyncSession = Depends(get_db)):
        return await db.get(User, user.id)

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_current_user] = _override_user
    app.dependency_overrides[get_rate_limiter] = lambda: RateLimiter(session_factory, clock=clock)
    app.dependency_overrides[get_lookup_policy] = lambda: lookup_policy

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
