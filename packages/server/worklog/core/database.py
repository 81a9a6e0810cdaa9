"""
Database connection and session management.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from worklog.core.config import get_settings

settings = get_settings()


def engine_connect_args(database_url: str, timeout: float) -> dict:
    """Per-connection statement timeout for the configured driver."""
    driver = make_url(database_url).drivername
    if driver.endswith("asyncpg"):
        return {"command_timeout": timeout}
    if driver.startswith("sqlite"):
        return {"timeout": timeout}
    return {}


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
    pool_pre_ping=True,
    connect_args=engine_connect_args(
        settings.database_url, settings.statement_timeout_seconds
    ),
)

async_session_factory = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db():
    """Create all tables (development only - use migrations in production)."""
    import worklog.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions.

    Handlers that write commit before returning; anything left uncommitted
    is rolled back when a handler raises.
    """
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_session_context():
    """Context manager for use outside of FastAPI request lifecycle."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
