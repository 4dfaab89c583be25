import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker

from fulfillment.config import settings

logger = logging.getLogger(__name__)

# Create Async Engine
engine = create_async_engine(settings.DATABASE_URL, echo=settings.DB_ECHO, future=True)


async def init_db(bind=None):
    """Create all tables (optionally dropping them first)."""
    # Import models so they are registered with SQLModel metadata
    import fulfillment.models  # noqa: F401

    async with (bind or engine).begin() as conn:
        if settings.RECREATE_TABLES:
            logger.warning("RECREATE_TABLES is set, dropping all tables")
            await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncSession:
    async_session = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    async with async_session() as session:
        yield session


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Run a business event as one unit of work.

    Repositories only flush; the block commits once on success and rolls
    every write back if any step raises.
    """
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
