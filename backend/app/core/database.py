"""Database engine and session factory construction.

Engines are built by the application lifespan (or by tests) and handed to
services as a session factory; nothing here opens a connection at import time.
"""

from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from backend.app.core.config import Settings


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""
    pass


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the outage store."""
    engine_kwargs: Dict[str, Any] = {"echo": settings.debug}

    if "postgresql" in settings.database_url or "mysql" in settings.database_url:
        engine_kwargs.update({
            "pool_size": settings.database_pool_size,
            "max_overflow": settings.database_max_overflow,
            "pool_pre_ping": True, # Resilience fix
        })

    return create_async_engine(settings.database_url, **engine_kwargs)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory shared by the store for the lifetime of the engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
