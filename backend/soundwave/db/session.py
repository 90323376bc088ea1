from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Dict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from ..core.config import Settings, get_settings
from . import models  # noqa: F401  (registers tables on Base.metadata)
from .base import Base


def build_engine(settings: Settings) -> AsyncEngine:
    options: Dict[str, Any] = {"echo": settings.sql_echo}
    if settings.is_sqlite:
        # aiosqlite connections are bound to the loop that opened them
        options["poolclass"] = NullPool
    else:
        options["pool_pre_ping"] = True
    engine = create_async_engine(settings.database_dsn, **options)
    if settings.is_sqlite:
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # pragma: no cover - driver hook
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


settings = get_settings()

engine = build_engine(settings)
AsyncSessionFactory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_session() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionFactory() as session:
        yield session


async def init_db() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
