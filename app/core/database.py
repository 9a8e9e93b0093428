# DB connections

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy import create_engine
from app.core.config import settings
import duckdb


def _pool_options(url: str) -> dict:
    # SQLite drivers manage their own pool
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": 20, "max_overflow": 0}


# Async engine for FastAPI
async_engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_pool_options(settings.database_url)
)

AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# Sync engine for CLI scripts and Alembic
sync_engine = create_engine(
    settings.database_url_sync,
    echo=settings.debug
)


async def get_db() -> AsyncSession:
    """Dependency for getting async database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


def get_duckdb_connection(path: str | None = None):
    """Open the DuckDB snapshot file"""
    return duckdb.connect(path or settings.duckdb_path)
