"""Async SQLAlchemy engine lifecycle and session management.

The engine is created once by :func:`init_db` during application startup and
released by :func:`close_db` at shutdown. Nothing connects at import time.
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from hr_leave.config import settings

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def init_db(url: Optional[str] = None) -> async_sessionmaker[AsyncSession]:
    """Create the process-wide engine and session factory (idempotent)."""
    global _engine, _session_factory

    if _session_factory is not None:
        return _session_factory

    _engine = create_async_engine(
        url or settings.DATABASE_URL,
        echo=settings.ENVIRONMENT == "development",
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
    )
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    logger.info("Database engine initialised")
    return _session_factory


async def close_db() -> None:
    """Dispose the engine and drop the session factory."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        logger.info("Database engine disposed")
    _engine = None
    _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the active session factory; raises if init_db was never called."""
    if _session_factory is None:
        raise RuntimeError("Database is not initialised; call init_db() first")
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yield an async database session."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
