"""Database engine and request-scoped sessions for the slot and profile tables.

Every slot write is an UPDATE guarded by the version read a moment earlier.
On SQLite, two such writers collide on the database lock rather than on the
version check, so SQLite connections get a busy timeout: the second writer
waits for the first to commit and then loses cleanly with a StaleSlotError
instead of failing with "database is locked".
"""

from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from visitlog.config import Settings, get_settings
from visitlog.models import Base


def connect_args_for(settings: Settings) -> dict:
    """DBAPI connect arguments for the configured database."""
    if not settings.database_url.startswith("sqlite"):
        return {}
    return {
        "check_same_thread": False,
        "timeout": settings.database_busy_timeout_seconds,
    }


def build_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(settings.database_url, connect_args=connect_args_for(settings))


@lru_cache
def get_engine() -> AsyncEngine:
    """Return the process-wide engine, created on first use."""
    return build_engine(get_settings())


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=get_engine(), class_=AsyncSession, expire_on_commit=False)


async def init_db() -> None:
    """Create the tables directly from metadata (development only)."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session for one request; commit on success, roll back on error."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine (app shutdown)."""
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
    get_session_factory.cache_clear()
    get_engine.cache_clear()
