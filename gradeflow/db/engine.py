"""Async SQLAlchemy engine and session factory.

Nothing is created at import time: ``build_database`` is called once by
the service container when DATABASE_URL is set, and the returned
``Database`` is disposed by the application lifespan.  Without
DATABASE_URL the container uses the in-memory document store instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


@dataclass(frozen=True, slots=True)
class Database:
    engine: AsyncEngine
    sessions: async_sessionmaker[AsyncSession]

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")


def build_database(database_url: str, *, echo: bool = False) -> Database:
    engine = create_async_engine(
        database_url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
    )
    sessions = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    logger.info("Database engine created: %s", engine.url.render_as_string())
    return Database(engine=engine, sessions=sessions)
