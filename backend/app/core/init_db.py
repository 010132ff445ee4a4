"""
Database initialization script.

Creates the outage tables directly from the ORM metadata. Meant for local
SQLite databases and tests; shared environments use the Alembic revisions
under backend/alembic/versions.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from backend.app.core.config import get_settings
from backend.app.core.database import Base, build_engine
from backend.app.models.outage_orm import OutageGroupORM, OutageItemORM  # noqa: F401

logger = logging.getLogger(__name__)


async def create_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Outage tables ensured")


async def drop_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def init_database():
    settings = get_settings()
    print(f"📡 Initializing outage database at {settings.database_url}...")
    engine = build_engine(settings)
    try:
        await create_tables(engine)
    finally:
        await engine.dispose()
    print("✅ Database initialized")


if __name__ == "__main__":
    asyncio.run(init_database())
