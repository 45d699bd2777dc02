import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from ..models.base import Base

logger = logging.getLogger(__name__)

# A single shared connection keeps the in-memory database alive for the
# lifetime of the engine.
MEMORY_DATABASE_URL = "sqlite+aiosqlite://"


def create_memory_engine(echo: bool = False) -> AsyncEngine:
    """Create an async engine backed by a private in-memory SQLite database."""
    return create_async_engine(
        MEMORY_DATABASE_URL,
        echo=echo,  # Set to True for SQL debugging
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory whose objects stay readable after commit."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables on the engine."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.debug("Database tables created/verified")

