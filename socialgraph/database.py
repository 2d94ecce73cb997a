"""
Async SQLAlchemy engine lifecycle for the relational store.

The engine is created once at startup and reused across all requests.
Production talks to a MySQL-protocol server through aiomysql; tests swap in
an aiosqlite engine with set_engine().
"""
import logging
from typing import Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from socialgraph.config import settings
from socialgraph.store import StoreGateway

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None


class Base(DeclarativeBase):
    pass


def init_engine(url: Optional[str] = None) -> AsyncEngine:
    global _engine
    if _engine is None:
        url = url or settings.sqlalchemy_url
        kwargs = {"pool_pre_ping": True, "echo": False}
        if not url.startswith("sqlite"):
            kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
            )
        _engine = create_async_engine(url, **kwargs)
        if url.startswith("sqlite"):
            enable_sqlite_foreign_keys(_engine)
        logger.info("Database engine created for %s", _engine.url.render_as_string())
    return _engine


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """SQLite ignores REFERENCES clauses unless each connection opts in."""

    @event.listens_for(engine.sync_engine, "connect")
    def _foreign_keys_on(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def set_engine(engine: Optional[AsyncEngine]) -> None:
    global _engine
    _engine = engine


def get_engine() -> AsyncEngine:
    if _engine is None:
        return init_engine()
    return _engine


async def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


async def init_db(engine: Optional[AsyncEngine] = None) -> None:
    """Create all tables if they don't exist (idempotent)."""
    import socialgraph.models  # noqa: F401  registers the tables on Base

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")


def get_gateway() -> StoreGateway:
    """FastAPI dependency that yields the shared store gateway."""
    return StoreGateway(get_engine())
