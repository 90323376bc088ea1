from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ...db.store import translate_storage_errors
from ...schemas.interactions import HealthResponse
from ..deps import get_db_session

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def get_health(session: AsyncSession = Depends(get_db_session)) -> HealthResponse:
    with translate_storage_errors("health"):
        await session.execute(text("SELECT 1"))
    return HealthResponse(
        database=session.get_bind().dialect.name,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
