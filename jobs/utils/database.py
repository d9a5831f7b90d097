"""
Database wiring for worker tasks.

Every actor runs its coroutine under a fresh asyncio.run loop, so worker
engines use NullPool and never hand a connection to another loop.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from referral_engine.config.settings import settings


def create_task_engine(database_url: str | None = None) -> AsyncEngine:
    """Create a non-pooling engine for worker use."""
    return create_async_engine(
        database_url or settings.database_url,
        echo=settings.database_echo,
        poolclass=NullPool,
    )


def create_task_session_maker(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create a session maker for worker tasks."""
    return async_sessionmaker(
        bind=engine or create_task_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


@asynccontextmanager
async def task_session(
    session_maker: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncIterator[AsyncSession]:
    """
    Open one session for a task run.

    Args:
        session_maker: Factory to use (defaults to task_session_maker)

    Yields:
        Session that is closed when the task body finishes
    """
    async with (session_maker or task_session_maker)() as session:
        yield session


# Shared worker instances
task_engine = create_task_engine()
task_session_maker = create_task_session_maker(task_engine)
