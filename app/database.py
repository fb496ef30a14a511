"""Database engine, sessions and connectivity checks."""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import Settings, settings
from app.core.exceptions import DependencyException
from app.core.resilience import guarded_call
from app.models.appointments import NO_OVERLAP_CONSTRAINT

logger = structlog.get_logger(__name__)

# Errors meaning PostgreSQL could not be reached or dropped the connection
DATABASE_ERRORS: tuple[type[BaseException], ...] = (OperationalError, InterfaceError, OSError)


def build_engine(config: Settings) -> AsyncEngine:
    """
    Create the async engine for the booking database.

    Connection attempts are bounded by the external-call timeout.
    """
    return create_async_engine(
        config.async_database_url,
        echo=config.debug,
        pool_pre_ping=True,
        pool_size=config.db_pool_size,
        max_overflow=config.db_max_overflow,
        pool_recycle=3600,
        connect_args={
            "server_settings": {
                "application_name": config.app_name,
                "timezone": "UTC",
            },
            "timeout": config.external_call_timeout_seconds,
        },
    )


engine: AsyncEngine = build_engine(settings)

# Async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with session_scope() as session:
        yield session


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Session that is rolled back if the block raises."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def _scalar(sql: str, **params: object) -> object:
    async with engine.connect() as conn:
        result = await conn.execute(text(sql), params)
        return result.scalar()


async def check_database_connection() -> bool:
    """Check if database connection is healthy."""
    try:
        await guarded_call(
            _scalar("SELECT 1"),
            dependency="database",
            timeout=settings.external_call_timeout_seconds,
            errors=DATABASE_ERRORS,
        )
    except DependencyException:
        return False
    return True


async def overlap_guard_installed() -> bool:
    """
    Check that the per-staff no-overlap constraint exists.

    Without it concurrent bookings can commit overlapping appointments.
    """
    try:
        found = await guarded_call(
            _scalar("SELECT 1 FROM pg_constraint WHERE conname = :name", name=NO_OVERLAP_CONSTRAINT),
            dependency="database",
            timeout=settings.external_call_timeout_seconds,
            errors=DATABASE_ERRORS,
        )
    except DependencyException:
        return False
    return found is not None
