"""Async engine and session factories."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from clubhost.core.config import settings

# Host plan transactions hold a connection only for the few reads and writes of a
# single user/club pair, so a small pool absorbs webhook bursts.
POOL_SIZE = 10

async_engine = create_async_engine(
    str(settings.SQLALCHEMY_ASYNC_DATABASE_URI),
    pool_size=POOL_SIZE,
    max_overflow=POOL_SIZE,
    pool_pre_ping=True,
    pool_recycle=300,
    pool_timeout=30,
    # Optimistic version checks rely on every retry seeing the latest committed rows
    isolation_level="READ COMMITTED",
)

AsyncSessionLocal = async_sessionmaker(
    bind=async_engine, autoflush=False, expire_on_commit=False
)


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Open a session outside of a request, e.g. for the reconciler loop.

    Example:
    -------
        async with get_db_context() as db:
            await host_plan_reconciler.reconcile_all(db)

    """
    async with AsyncSessionLocal() as db:
        yield db


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request scoped session for dependency injection."""
    async with AsyncSessionLocal() as db:
        yield db
