"""Database setup with SQLAlchemy async."""

from collections.abc import AsyncGenerator

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from callcenter.config import get_settings

settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Create missing tables."""
    # Register models on the metadata before create_all.
    import callcenter.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_db_ready() -> None:
    """
    Verify database connectivity and expected schema.

    Raises RuntimeError when the calls table is missing.
    """
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

        has_calls = await conn.run_sync(lambda sync_conn: inspect(sync_conn).has_table("calls"))
        if not has_calls:
            raise RuntimeError(
                "Database schema is missing tables: calls "
                "(run database init or check migrations)."
            )
