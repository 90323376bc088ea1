from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.config import Settings
from ...core.security import UserContext, resolve_user, verify_service_token
from ...schemas.interactions import FavoriteToggleResponse, SuccessResponse
from ...schemas.tracks import MessageResponse
from ...schemas.videos import (
    FavoriteVideo,
    RecentVideo,
    VideoCategory,
    VideoCreate,
    VideoCreated,
    VideoOut,
    VideoWatchRequest,
)
from ...services import videos
from ..deps import get_db_session, get_settings_dep

router = APIRouter(prefix="/api", tags=["videos"])
admin = APIRouter(prefix="/api", tags=["videos-admin"], dependencies=[Depends(verify_service_token)])


@router.get("/videos", response_model=List[VideoOut])
async def get_videos(
    user: UserContext = Depends(resolve_user),
    session: AsyncSession = Depends(get_db_session),
) -> List[VideoOut]:
    return await videos.list_videos(session, user)


@router.get("/video-favorites", response_model=List[FavoriteVideo])
async def get_video_favorites(
    user: UserContext = Depends(resolve_user),
    session: AsyncSession = Depends(get_db_session),
) -> List[FavoriteVideo]:
    return await videos.list_video_favorites(session, user)


@router.post("/video-favorites/{video_id}", response_model=FavoriteToggleResponse)
async def toggle_video_favorite(
    video_id: int,
    *,
    user: UserContext = Depends(resolve_user),
    session: AsyncSession = Depends(get_db_session),
) -> FavoriteToggleResponse:
    favorited = await videos.toggle_video_favorite(session, user, video_id)
    return FavoriteToggleResponse(favorited=favorited)


@router.post("/video-watch", response_model=SuccessResponse)
async def video_watch(
    payload: VideoWatchRequest,
    *,
    user: UserContext = Depends(resolve_user),
    session: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    await videos.log_video_watch(session, user, payload)
    return SuccessResponse()


@router.get("/recent-videos", response_model=List[RecentVideo])
async def get_recent_videos(
    limit: int | None = Query(default=None, ge=1, le=200),
    *,
    user: UserContext = Depends(resolve_user),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings_dep),
) -> List[RecentVideo]:
    return await videos.recent_videos(session, user, limit or settings.recent_limit)


@router.get("/search-videos", response_model=List[VideoOut])
async def search_videos(
    q: Optional[str] = None,
    category: Optional[str] = None,
    *,
    user: UserContext = Depends(resolve_user),
    session: AsyncSession = Depends(get_db_session),
) -> List[VideoOut]:
    return await videos.search_videos(session, user, q=q, category=category)


@router.get("/video-categories", response_model=List[VideoCategory])
async def get_video_categories(session: AsyncSession = Depends(get_db_session)) -> List[VideoCategory]:
    return await videos.video_categories(session)


@admin.post("/videos", response_model=VideoCreated)
async def add_video(payload: VideoCreate, session: AsyncSession = Depends(get_db_session)) -> VideoCreated:
    video_id = await videos.create_video(session, payload)
    return VideoCreated(id=video_id)


@admin.delete("/videos/{video_id}", response_model=MessageResponse)
async def remove_video(video_id: int, session: AsyncSession = Depends(get_db_session)) -> MessageResponse:
    await videos.delete_video(session, video_id)
    return MessageResponse(message="Video deleted successfully")
