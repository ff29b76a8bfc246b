"""
Async engine, session factory and declarative base.

SQLite (aiosqlite) is the default store; PostgreSQL (asyncpg) gets a
connection pool.
"""
from pathlib import Path
from typing import Any, AsyncIterator, Dict
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from app.config import settings


def _is_sqlite(url: URL) -> bool:
    return url.get_backend_name() == "sqlite"


def engine_options(database_url: str) -> Dict[str, Any]:
    """create_async_engine() keyword arguments for a database URL."""
    if _is_sqlite(make_url(database_url)):
        return {"poolclass": NullPool, "connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "pool_pre_ping": True,
    }


engine = create_async_engine(settings.DATABASE_URL, echo=False, **engine_options(settings.DATABASE_URL))

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    Request-scoped session. Commits on success, rolls back on error.

    Activity writes never use this session; see ActivityLogger.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create missing tables. The SQLite file's directory is created first."""
    import app.models  # noqa: F401  registers all tables on Base.metadata

    url = make_url(settings.DATABASE_URL)
    if _is_sqlite(url) and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
