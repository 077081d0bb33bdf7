"""
Test configuration and fixtures
"""

import pytest
import pytest_asyncio
from typing import AsyncGenerator, Optional
from datetime import datetime, timedelta, timezone
from uuid import uuid4
import os

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from httpx import AsyncClient, ASGITransport

# Set test environment before the app reads its settings
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-that-is-at-least-32-characters"
os.environ["LOG_FORMAT"] = "text"

# Import all models BEFORE creating fixtures (critical for create_all to work)
from app.core.database import Base
from app.models.event import Event
from app.models.snapshot import Snapshot  # noqa: F401
from app.models.audit_log import AuditLog  # noqa: F401
from app.core.metrics import metrics_collector
from app.core.security import create_access_token


class FakeClock:
    """Callable clock the lock tests can move forward"""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime.now(timezone.utc).replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def plan_with_tables(*tables, guests=()):
    """
    Build a plan document. Tables are (table_id, capacity) pairs and
    guests are guest ids.
    """
    return {
        "tables": [
            {
                "id": table_id,
                "shape": "round",
                "capacity": capacity,
                "start_index": 1,
                "head_seat": 1,
                "seats": [],
            }
            for table_id, capacity in tables
        ],
        "guests": [{"id": guest_id, "name": f"Guest {guest_id}"} for guest_id in guests],
        "settings": {"color_palette": "default"},
    }


@pytest_asyncio.fixture(scope="function")
async def test_db(tmp_path):
    """File-backed SQLite so separate sessions get separate connections"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'seatplan.db'}",
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_db):
    return async_sessionmaker(
        test_db,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_factory() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def other_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Second independent session, standing in for a concurrent caller"""
    async with session_factory() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()


@pytest_asyncio.fixture
async def client(db_session):
    """Create test client with dependency override"""
    from app.main import app
    from app.core.database import get_session

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session

    try:
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest_asyncio.fixture(autouse=True)
async def reset_metrics():
    await metrics_collector.reset_metrics()
    yield


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def owner_id():
    return uuid4()


@pytest.fixture
def other_id():
    return uuid4()


@pytest.fixture
def auth_headers(owner_id):
    token = create_access_token({"sub": str(owner_id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_headers(other_id):
    token = create_access_token({"sub": str(other_id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_event(session_factory, owner_id):
    """
    Insert an event through its own session and return it detached, so
    rollbacks in the session under test never expire it.
    """

    async def _make(plan: Optional[dict] = None, owner=None, version: int = 0, **columns) -> Event:
        async with session_factory() as session:
            event = Event(
                id=uuid4(),
                owner_id=owner or owner_id,
                name="Wedding",
                grid_rows=20,
                grid_cols=30,
                plan_data=plan if plan is not None else {},
                autosave_version=version,
                **columns,
            )
            session.add(event)
            await session.commit()
            await session.refresh(event)
            return event

    return _make


@pytest.fixture
def read_event(session_factory):
    """Fresh read of an event row, independent of the session under test"""

    async def _read(event_id) -> Event:
        async with session_factory() as session:
            return await session.get(Event, event_id)

    return _read


@pytest.fixture
def count_rows(session_factory):
    from sqlalchemy import func, select

    async def _count(model, event_id) -> int:
        async with session_factory() as session:
            result = await session.execute(
                select(func.count()).select_from(model).where(model.event_id == event_id)
            )
            return result.scalar_one()

    return _count


@pytest.fixture
def build_plan():
    return plan_with_tables
