"""Database engine and session management.

Review note:
- One SQLite file holds generated topics, study progress and topic chats;
  each topic save commits on its own so an interrupted run keeps everything
  saved before the stop.
"""
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
import logging

from studyguide.config import settings

logger = logging.getLogger("uvicorn.error")

engine = create_async_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=settings.DEBUG,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def init_db() -> None:
    """Create tables."""
    from studyguide.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("db-init tables=%s", ",".join(sorted(Base.metadata.tables)))
