from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from loguru import logger

from src.config.settings_env import settings
from src.infrastructure.persistence.models.models import Base


def build_async_engine(url: str, echo: bool = False, **kwargs) -> AsyncEngine:
    """Create an engine whose transactions serialize concurrent bookings.

    SQLite transactions start with ``BEGIN IMMEDIATE`` so the write lock is
    taken before the first conflict-check read; other backends run at
    SERIALIZABLE isolation.
    """
    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=echo, **kwargs)

        @event.listens_for(engine.sync_engine, "connect")
        def _disable_driver_begin(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    return create_async_engine(url, echo=echo, isolation_level="SERIALIZABLE", **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async_engine = build_async_engine(settings.ASYNC_DATABASE_URL, echo=settings.SQL_ECHO)
AsyncSessionLocal = build_session_factory(async_engine)


async def init_db(engine: AsyncEngine = async_engine):
    logger.info(f"Initializing database at: {engine.url}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    logger.info("Tables created")
