"""Async SQLAlchemy engine and session factory.

One engine with connection pooling, one session per request via the
get_db dependency. The URL decides the driver: asyncpg in production,
aiosqlite in tests.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from wedsite.config import settings


def _engine_kwargs(url: str) -> dict:
    # SQLite pools reject sizing arguments.
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": 5, "max_overflow": 15}


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_engine_kwargs(settings.database_url),
)

# Session factory — each request gets its own session.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncSession:
    """FastAPI dependency — yields a session per request, auto-closes."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
