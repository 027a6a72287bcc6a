from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (AsyncEngine, AsyncSession,
                                    async_sessionmaker, create_async_engine)
from sqlalchemy.orm import DeclarativeBase

from docvault.infrastructure.config.settings import Settings


# Modern SQLAlchemy 2.0 pattern
class Base(DeclarativeBase):
    """Base class for all database models"""

    pass


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine with pool settings suited to the backend."""
    url = settings.database_url
    if url.startswith("sqlite"):
        return create_async_engine(
            url,
            echo=settings.database_echo,
            connect_args={"timeout": settings.database_timeout_seconds},
        )

    return create_async_engine(
        url,
        echo=settings.database_echo,
        pool_pre_ping=True,
        pool_size=20,
        max_overflow=30,
        pool_recycle=3600,
        pool_timeout=settings.database_timeout_seconds,
        connect_args=(
            {
                "server_settings": {"jit": "off"},
                "command_timeout": settings.database_timeout_seconds,
            }
            if "postgresql" in url
            else {}
        ),
    )


class Database:
    """
    Owns the engine and session factory.

    session() yields a plain session; callers own commit and rollback.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(create_engine(settings))

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            yield session

    async def create_all(self) -> None:
        """Create all tables (bootstrap and tests; production uses migrations)."""
        # Import models so they register on Base.metadata
        from docvault.infrastructure.persistence import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
