"""
Database engine and sessions for the IVMS store.

Production runs on PostgreSQL through asyncpg with a bounded connection
pool (DB_POOL_SIZE / DB_MAX_OVERFLOW / DB_POOL_RECYCLE). A sqlite+aiosqlite
DATABASE_URL is accepted for local runs; SQLite gets no pool sizing.
"""

from typing import Any, Dict

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from ivms.app.core.config import settings


def _engine_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.db_echo}
    if not settings.database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=settings.db_pool_recycle,
            pool_pre_ping=True,
        )
    return options


engine = create_async_engine(settings.database_url, **_engine_options())

# Services refresh explicitly after commit
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db():
    """FastAPI dependency: one session per request, rolled back if left uncommitted."""
    async with AsyncSessionLocal() as session:
        yield session
