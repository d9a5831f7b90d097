"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for settings validation
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BUSINESS_TIMEZONE", "UTC")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import itertools
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import dramatiq
import pytest
import pytest_asyncio
from dramatiq.brokers.stub import StubBroker
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

# Actors must bind to the stub broker, never to Redis
stub_broker = StubBroker()
stub_broker.emit_after("process_boot")
dramatiq.set_broker(stub_broker)

from referral_engine.models import Base, Member, MembershipStatus  # noqa: E402
from referral_engine.services.notifications import (  # noqa: E402
    NotificationDispatcher,
)
from referral_engine.services.plans.plan_catalog import (  # noqa: E402
    seed_default_plans,
)

# Fixed clock used across tests
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    """Fixed "current" moment: 2026-03-01 12:00 UTC."""
    return NOW


@pytest.fixture
def mock_session():
    """Mock AsyncSession for tests without a database."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.delete = MagicMock()
    session.refresh = AsyncMock()
    session.flush = AsyncMock()
    return session


@pytest.fixture
def broker():
    """Dramatiq stub broker, flushed after each test."""
    stub_broker.flush_all()
    yield stub_broker
    stub_broker.flush_all()


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINT works on SQLite
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def plans(session):
    """Default BASIC / STANDARD / PREMIUM catalog."""
    await seed_default_plans(session)
    await session.commit()


class RecordingSink:
    """Notification sink that keeps every delivered event."""

    def __init__(self) -> None:
        self.events = []

    async def send(self, event) -> None:
        self.events.append(event)

    def kinds(self) -> list[str]:
        return [str(e.kind) for e in self.events]


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def dispatcher(sink):
    return NotificationDispatcher(sink)


@pytest.fixture
def make_member(session):
    """
    Factory for committed members.

    Members get an ACTIVE BASIC membership started a day before NOW
    unless told otherwise.
    """
    counter = itertools.count(1)

    async def _make(
        sponsor: Member | None = None,
        plan: str | None = "BASIC",
        status: str = MembershipStatus.ACTIVE,
        start: datetime | None = None,
        base_days: int = 30,
        **overrides,
    ) -> Member:
        n = next(counter)
        data = {
            "username": f"member{n}",
            "email": f"member{n}@example.com",
            "referral_code": f"REF{n:05d}",
            "sponsor_id": sponsor.id if sponsor else None,
            "membership_plan": plan if status != MembershipStatus.NONE else None,
            "membership_status": status,
        }
        if status != MembershipStatus.NONE:
            start = start or NOW - timedelta(days=1)
            data.update(
                membership_start_date=start,
                membership_end_date=start + timedelta(days=base_days),
                earnings_continue_until=start + timedelta(days=base_days),
            )
        data.update(overrides)

        member = Member(**data)
        session.add(member)
        await session.commit()
        return member

    return _make
