"""Database engine and session factory.

The engine is created once at startup and the session factory is injected
into every component that touches the store.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .models import Base

SessionFactory = async_sessionmaker[AsyncSession]


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine for ``database_url``."""
    return create_async_engine(database_url, echo=echo)


def create_session_factory(engine: AsyncEngine) -> SessionFactory:
    """Sessions keep attributes loaded after commit so results can be returned."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create all tables. Used by ``bizforge init-db`` and tests."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
