from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings, get_settings
from ..db.session import get_session
from ..db.store import SqlCatalogStore
from ..services.discovery import DiscoveryEngine


async def get_settings_dep() -> Settings:
    return get_settings()


async def get_db_session() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


async def get_discovery_engine(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings_dep),
) -> DiscoveryEngine:
    return DiscoveryEngine(SqlCatalogStore(session), limit=settings.discover_limit)
