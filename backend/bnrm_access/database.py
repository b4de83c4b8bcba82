import logging
import threading
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import settings

logger = logging.getLogger("bnrm_access.database")

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None
_engine_lock = threading.Lock()


def _build_engine() -> AsyncEngine:
    if settings.uses_sqlite:
        # SQLite drivers manage their own pool; QueuePool sizing does not apply
        return create_async_engine(settings.database_url, echo=settings.debug, future=True)
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        future=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=settings.db_pool_pre_ping,
    )


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine, _session_factory

    if _engine is not None:
        return _engine

    with _engine_lock:
        if _engine is None:
            _engine = _build_engine()
            # expire_on_commit=False: services re-query or refresh objects
            # they reuse after a commit.
            _session_factory = async_sessionmaker(
                bind=_engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
            logger.info("database engine created dialect=%s", _engine.dialect.name)
    return _engine


def AsyncSessionLocal() -> AsyncSession:
    """Open a new session bound to the shared engine."""
    get_engine()
    assert _session_factory is not None
    return _session_factory()


async def dispose_engine() -> None:
    global _engine, _session_factory
    with _engine_lock:
        engine, _engine = _engine, None
        _session_factory = None
    if engine is not None:
        await engine.dispose()
        logger.info("database engine disposed")


async def check_database_connection(engine: AsyncEngine) -> None:
    async with engine.connect() as connection:
        await connection.execute(text("SELECT 1"))


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session
