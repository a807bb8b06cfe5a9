import os
from functools import lru_cache
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from pitchcoach_backend.app.core.config import database_url
from pitchcoach_backend.app.core.logging import get_logger

log = get_logger("db")


# ------------------------------------------------------------
# Base class for ORM models
# ------------------------------------------------------------
class Base(DeclarativeBase):
    """Base for all ORM models."""
    pass


# ------------------------------------------------------------
# Async SQLAlchemy engine + session factory (built on first use)
# ------------------------------------------------------------
@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    # SQL_ECHO=true prints SQL statements (debugging)
    echo = (os.getenv("SQL_ECHO", "")).lower() in ("1", "true", "yes", "on")
    return create_async_engine(database_url(), echo=echo)


@lru_cache(maxsize=1)
def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        get_engine(),
        expire_on_commit=False,
        class_=AsyncSession,
    )


# ------------------------------------------------------------
# Request-scoped DB dependency
# ------------------------------------------------------------
async def get_db() -> AsyncIterator[AsyncSession]:
    """
    Provides an async SQLAlchemy session.
    Ensures proper cleanup after the caller is done.
    """
    async with get_sessionmaker()() as session:
        yield session


# ------------------------------------------------------------
# Optional: startup connectivity check
# ------------------------------------------------------------
async def test_connection() -> int:
    """
    Verify DB connectivity; call from the host app's startup if desired.
    """
    async with get_engine().connect() as conn:
        result = await conn.execute(text("SELECT 1"))
        value = result.scalar_one()
        log.info("DB connection OK: %s", value)
        return value
