"""
Async database setup with SQLAlchemy and aiosqlite.

The job table is written both by API requests and by the scheduler loop,
so SQLite runs in WAL mode with a busy timeout.
"""
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy import text

from app.config import DATABASE_URL, ensure_directories
from app.models import Base


# Create async engine
engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    connect_args={'timeout': 30},
)


# Session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def enable_wal_mode(target_engine=None):
    """Enable WAL mode so API reads don't block scheduler writes."""
    async with (target_engine or engine).begin() as conn:
        await conn.execute(text('PRAGMA journal_mode=WAL'))
        await conn.execute(text('PRAGMA synchronous=NORMAL'))


async def init_db(target_engine=None):
    """Initialize database - create tables if they don't exist."""
    ensure_directories()

    async with (target_engine or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await enable_wal_mode(target_engine)


async def close_db():
    """Close database connections."""
    await engine.dispose()


async def get_db():
    """
    Dependency that provides an async database session.

    Usage:
        @router.get('/jobs')
        async def list_jobs(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
