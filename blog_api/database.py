from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from blog_api.cache import cache
from blog_api.config import settings
from blog_api.middleware import install_query_counter

# Module-level engine variable allows tests to override with a test engine.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

# Register the per-request SQL query counter on the production engine.
install_query_counter(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    """
    Yield one session per request.

    Services only flush; the commit (or rollback on any exception) happens
    here so a request is a single unit of work.  Cache invalidations queued
    by the services run once the commit succeeded.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            cache.discard_pending(session)
            raise
        await cache.apply_pending(session)


async def dispose_engine() -> None:
    """Close all pooled connections.  Called once at application shutdown."""
    await engine.dispose()
