from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import event, text
import logging

from config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

DATABASE_URL = settings.get_database_url()


def is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def configure_sqlite(engine: AsyncEngine) -> None:
    """
    Make every SQLite transaction take the write lock up front, so
    concurrent writers queue on busy_timeout instead of failing on upgrade.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        # Hand transaction control to SQLAlchemy's "begin" event below
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA busy_timeout=30000")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str) -> AsyncEngine:
    """Create an async engine for Postgres (asyncpg) or SQLite (aiosqlite)."""
    if is_sqlite(url):
        engine = create_async_engine(url, echo=False)
        configure_sqlite(engine)
        return engine

    connect_args = {}
    if settings.POSTGRES_SSLMODE:
        connect_args["ssl"] = settings.POSTGRES_SSLMODE

    return create_async_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        connect_args=connect_args
    )


engine = build_engine(DATABASE_URL)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False
)


class Base(DeclarativeBase):
    pass


async def create_tables(target: AsyncEngine) -> None:
    """Create any missing roster tables on the given engine."""
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db():
    """Initialize database connection and make sure the roster tables exist"""
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            logger.info("Database connection successful")

        await create_tables(engine)
        logger.info(f"Available tables: {sorted(Base.metadata.tables)}")
        return True
    except Exception as e:
        logger.error(f"Database initialization error: {e}")
        raise
