"""PostgreSQL store with async SQLAlchemy.

Handles:
- Engine and session lifecycle for one process
- Connection pooling

A single `Database` is built in the app lifespan and handed to services,
so tests can construct their own against SQLite.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


class Database:
    """Owns the async engine and session factory."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_url(cls, url: str, *, echo: bool = False) -> "Database":
        """Create a pooled database for a Postgres URL (or a plain engine for SQLite)."""
        if url.startswith("sqlite"):
            return cls(create_async_engine(url, echo=echo))
        engine = create_async_engine(
            url,
            echo=echo,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
        )
        return cls(engine)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get database session context manager.

        Commits on clean exit, rolls back and re-raises otherwise.

        Usage:
            async with db.session() as session:
                result = await session.execute(query)
        """
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> None:
        """Fail fast if the database is unreachable."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def create_tables(self) -> None:
        """Create all tables (for development/testing only)."""
        # Register every model on Base.metadata before create_all.
        import deals_admin.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self) -> None:
        """Drop all tables (for testing only)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def close(self) -> None:
        """Close database connection pool."""
        await self.engine.dispose()
