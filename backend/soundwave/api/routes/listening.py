from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.config import Settings
from ...core.security import UserContext, resolve_user
from ...schemas.interactions import FavoriteToggleResponse, SuccessResponse, TrackInteractionRequest, UserStats
from ...schemas.tracks import FavoriteTrack, RecentTrack
from ...services import favorites, library
from ...services.interactions import log_track_interaction
from ..deps import get_db_session, get_settings_dep

router = APIRouter(prefix="/api", tags=["listening"])


@router.post("/track-interaction", response_model=SuccessResponse)
async def track_interaction(
    payload: TrackInteractionRequest,
    *,
    user: UserContext = Depends(resolve_user),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings_dep),
) -> SuccessResponse:
    await log_track_interaction(session, user, payload, completed_threshold=settings.completed_play_seconds)
    return SuccessResponse()


@router.get("/favorites", response_model=List[FavoriteTrack])
async def get_favorites(
    user: UserContext = Depends(resolve_user),
    session: AsyncSession = Depends(get_db_session),
) -> List[FavoriteTrack]:
    return await favorites.list_favorites(session, user)


@router.post("/favorites/{track_id}", response_model=FavoriteToggleResponse)
async def toggle_favorite(
    track_id: int,
    *,
    user: UserContext = Depends(resolve_user),
    session: AsyncSession = Depends(get_db_session),
) -> FavoriteToggleResponse:
    favorited = await favorites.toggle_favorite(session, user, track_id)
    return FavoriteToggleResponse(favorited=favorited)


@router.get("/recent", response_model=List[RecentTrack])
async def get_recent(
    limit: int | None = Query(default=None, ge=1, le=200),
    *,
    user: UserContext = Depends(resolve_user),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings_dep),
) -> List[RecentTrack]:
    return await library.recent_tracks(session, user, limit or settings.recent_limit)


@router.get("/user-stats", response_model=UserStats)
async def get_user_stats(
    user: UserContext = Depends(resolve_user),
    session: AsyncSession = Depends(get_db_session),
) -> UserStats:
    return await library.user_stats(session, user)
