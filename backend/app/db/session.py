"""
Async engine, session factory and transaction helpers.

PostgreSQL (asyncpg) is the production store. Seat exclusivity relies on the
unique (trip_id, seat_number) constraint and on conditional status updates,
both of which are race-free under READ COMMITTED.

SQLite (aiosqlite) is supported for local runs and tests. pysqlite's own
transaction handling is switched off and every transaction starts with
BEGIN IMMEDIATE, so writers are serialized instead of failing on lock
upgrade.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import get_settings
from app.core.exceptions import TransientStoreError
from app.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def _use_immediate_transactions(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, **kwargs) -> AsyncEngine:
    if url.startswith("sqlite"):
        engine = create_async_engine(url, **kwargs)
        _use_immediate_transactions(engine)
        return engine

    return create_async_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
        **kwargs,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
SessionLocal = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request. Services own their commits."""
    async with SessionLocal() as session:
        yield session


@asynccontextmanager
async def atomic(db: AsyncSession):
    """
    Run the enclosed block as one unit of work.

    Commits on success and rolls back on any exception. Integrity
    violations propagate unchanged so callers can translate them; other
    driver errors become TransientStoreError.
    """
    try:
        yield db
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise
    except DBAPIError as e:
        await db.rollback()
        logger.warning("transaction_rolled_back", error=str(e.orig) if e.orig else str(e))
        raise TransientStoreError() from e
    except BaseException:
        await db.rollback()
        raise
