"""
Database Infrastructure
=======================

Engine, session factory and schema bootstrap for the ticket store.

Uses SQLAlchemy 2.0 with asyncpg for async PostgreSQL operations (aiosqlite
in tests). Every session produced here carries the resolved Closed status id
in ``Session.info`` so the invariant hooks can read it without a query.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from propdesk.config import settings

CLOSED_STATUS_KEY = "closed_status_id"


class Base(DeclarativeBase):
    """Declarative base shared by ticket and reference-data models."""


# Process-wide engine and session factory, set by init_database()
_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """
    Get the database engine.

    Raises:
        RuntimeError: If engine has not been initialized
    """
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call init_database() first.")
    return _engine


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine; pool sizing only applies to server databases."""
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=settings.debug)

    return create_async_engine(
        database_url,
        echo=settings.debug,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
    )


def build_session_maker(
    engine: AsyncEngine,
    closed_status_id: Optional[int] = None,
) -> async_sessionmaker[AsyncSession]:
    """Session factory whose sessions know the terminal status id."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Prevent lazy loading after commit
        autoflush=False,
        info={CLOSED_STATUS_KEY: closed_status_id},
    )


def init_database(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Build the process-wide engine and session factory.

    Called from the application lifespan before the Closed status is resolved.
    """
    global _engine, _session_maker

    _engine = build_engine(database_url or settings.database_url)
    _session_maker = build_session_maker(_engine)
    return _engine


def set_closed_status(closed_status_id: Optional[int]) -> None:
    """Publish the resolved Closed status id to every future session."""
    if _session_maker is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    _session_maker.configure(info={CLOSED_STATUS_KEY: closed_status_id})


async def close_database() -> None:
    """
    Dispose of pooled connections on shutdown.
    """
    global _engine, _session_maker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_maker = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Async generator for database sessions, for use with FastAPI's Depends().

    Lifecycle operations commit their own unit of work; this only guarantees
    the session is rolled back and closed if a request fails midway.
    """
    if _session_maker is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    async with _session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Async context manager for database sessions.

    For use in startup hooks, scripts and tests:

        async with get_session_context() as session:
            closed_id = await resolve_status_id(session, "Closed")
    """
    if _session_maker is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    async with _session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables(engine: Optional[AsyncEngine] = None) -> None:
    """
    Create all database tables.

    This should only be used for development/testing; the schema belongs to
    migrations in production.
    """
    # Importing the models registers them on Base.metadata
    import propdesk.tickets.infrastructure.models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
