"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

Async engine, session factory and declarative base for the market mirror.
"""

from typing import AsyncIterator, Optional
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from rangemarket.config import settings

# Base class for models
Base = declarative_base()


def make_engine(url: Optional[str] = None, **kwargs) -> AsyncEngine:
    """
    Build an async engine.

    Args:
        url: Database URL (defaults to settings.database_url)
        **kwargs: Passed through to create_async_engine (e.g. poolclass)

    Returns:
        AsyncEngine
    """
    return create_async_engine(url or settings.database_url, echo=False, future=True, **kwargs)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    """Session factory that keeps ORM attributes loaded after commit."""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = make_engine()
AsyncSessionLocal = make_session_factory(engine)


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one session per request."""
    async with AsyncSessionLocal() as session:
        yield session


async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    """Create the markets, bets and payouts tables if they are missing."""
    # Mapped classes must be registered on Base.metadata first
    from rangemarket import models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
