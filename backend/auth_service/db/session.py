"""Async SQLAlchemy engine and session helpers.

Provides a configured async engine, sessionmaker and helper functions for
initializing the database and yielding sessions for dependency injection.
"""

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from auth_service.config.config import settings
from auth_service.core.logging import logger

Base = declarative_base()


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine suited to the backend named in ``database_url``.

    SQLite connections get ``PRAGMA foreign_keys=ON`` so that deleting a
    user cascades to its refresh tokens, as it does on Postgres.

    Args:
        database_url: SQLAlchemy async URL.
        echo: Whether to echo SQL statements.

    Returns:
        AsyncEngine: The configured engine.
    """

    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        engine = create_async_engine(url, echo=echo)

        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_async_engine(
        url, echo=echo, pool_size=5, max_overflow=10, pool_pre_ping=True
    )


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.DATABASE_URL_ASYNC, echo=settings.DB_ECHO)

AsyncSessionLocal = build_sessionmaker(engine)


async def initialize_database(bind: AsyncEngine = engine):
    """Create the metadata tables if they do not exist yet.

    Args:
        bind: Engine to create the tables on.

    Raises:
        Exception: Re-raises any exception encountered while initializing.
    """

    # Registers the mapped tables on Base.metadata.
    from auth_service.models import auth  # noqa: F401

    logger.info("Initializing database tables")
    async with bind.begin() as conn:
        try:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database initialization complete")
        except Exception:
            logger.exception("Database initialization failed")
            raise


async def ping_database(db: AsyncSession):
    """Run a trivial query and return the database's current timestamp."""

    result = await db.execute(text("SELECT CURRENT_TIMESTAMP"))
    return result.scalar_one()


async def get_db():
    """Yield an async database session for FastAPI dependency injection.

    Usage:
        db: AsyncSession = Depends(get_db)

    Yields:
        AsyncSession: an asynchronous SQLAlchemy session.
    """

    async with AsyncSessionLocal() as session:
        yield session
