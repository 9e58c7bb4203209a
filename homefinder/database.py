"""
Engine, session factory and declarative base for the listing tables.
"""

from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import text, DateTime, Uuid, func
from fastapi import Depends
from homefinder.config import settings
import logging
import uuid
from datetime import datetime, timezone
from typing import AsyncIterator

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for the given URL.
    PostgreSQL gets a tuned connection pool; other dialects use driver defaults.
    """
    if database_url.startswith("postgresql"):
        return create_async_engine(
            database_url,
            echo=echo,
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,
            pool_recycle=3600,
            pool_timeout=30,
            connect_args={
                "server_settings": {
                    "application_name": "homefinder",
                }
            }
        )
    return create_async_engine(database_url, echo=echo)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


engine = build_engine(settings.database_url, echo=settings.debug)

AsyncSessionLocal = build_session_factory(engine)


class Base(DeclarativeBase):
    """Every table gets a UUID key and UTC creation/update timestamps."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"


def get_session_factory() -> async_sessionmaker:
    """
    Dependency returning the session factory.
    Handlers that need several independent sessions (concurrent reads) use this directly.
    """
    return AsyncSessionLocal


async def get_db(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> AsyncIterator[AsyncSession]:
    """One session per request, rolled back if the handler raises."""
    async with session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def test_database_connection(session_factory: async_sessionmaker = None) -> bool:
    """Run `SELECT 1`; False (and a logged error) when the database cannot answer."""
    factory = session_factory or AsyncSessionLocal
    try:
        async with factory() as session:
            await session.scalar(text("SELECT 1"))
    except Exception as exc:
        logger.error("Database check failed: %s", exc)
        return False
    return True


async def create_tables(bind: AsyncEngine = None):
    """
    Create all database tables.
    Used by development tooling and the test-suite; production schemas are migrated separately.
    """
    target_engine = bind or engine

    # Import models so they register on the metadata
    from homefinder import models  # noqa: F401

    async with target_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Schema created on %s", target_engine.url.render_as_string(hide_password=True))


async def close_db_connection():
    """Dispose the module engine's pool on shutdown."""
    await engine.dispose()
    logger.debug("Connection pool disposed")
