"""
Database engine and session management.
The database only backs the key-value capability; activity data is
stored as JSON payloads under string keys.
"""
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from trainer.core.config import settings
from trainer.core.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all tables."""
    pass


def create_engine(database_url: str) -> AsyncEngine:
    """Create an async engine for the given URL."""
    return create_async_engine(database_url, future=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to an engine."""
    return async_sessionmaker(engine, expire_on_commit=False)


engine = create_engine(settings.DATABASE_URL)
AsyncSessionLocal = create_session_factory(engine)


async def init_db(db_engine: AsyncEngine = engine) -> None:
    """Create tables if they don't exist."""
    # Import models so their tables are registered on Base.metadata
    from trainer.models import kv  # noqa: F401
    
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    logger.info("Database tables ensured", url=db_engine.url.render_as_string(hide_password=True))
