"""Async engine and session factory for the catalog store.

Production runs on ``postgresql+asyncpg``; development and the test suite use
``sqlite+aiosqlite``. ``is_sqlite`` is consulted by services that take row
locks, since SQLite has no ``SELECT ... FOR UPDATE``.
"""
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from appstore.config import settings

is_sqlite = settings.database_url.startswith("sqlite")

# Applied on every new SQLite connection. foreign_keys is off by default there.
_SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA busy_timeout=5000",
    "PRAGMA foreign_keys=ON",
)


def _engine_options(sqlite: bool) -> dict:
    if sqlite:
        return {"echo": False}
    return {
        "echo": False,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    }


engine = create_async_engine(settings.database_url, **_engine_options(is_sqlite))
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

if is_sqlite:
    @event.listens_for(engine.sync_engine, "connect")
    def _apply_sqlite_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        for pragma in _SQLITE_PRAGMAS:
            cursor.execute(pragma)
        cursor.close()


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:
    """Request-scoped session for route handlers."""
    async with async_session() as session:
        yield session


async def init_db():
    """Create any missing tables. Existing tables are left alone."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine():
    await engine.dispose()
