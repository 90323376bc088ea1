from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Set

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.security import UserContext
from ..db import models
from ..db.store import ensure_video_exists, translate_storage_errors
from ..schemas.videos import (
    FavoriteVideo,
    RecentVideo,
    VideoCategory,
    VideoCreate,
    VideoOut,
    VideoWatchRequest,
    video_fields,
)
from .errors import InvalidRequest
from .favorites import toggle

logger = logging.getLogger("soundwave.videos")


async def favorite_video_ids(session: AsyncSession, user_id: str, video_ids: Sequence[int]) -> Set[int]:
    if not video_ids:
        return set()
    stmt = select(models.VideoFavorite.video_id).where(
        models.VideoFavorite.user_id == user_id,
        models.VideoFavorite.video_id.in_(list(video_ids)),
    )
    with translate_storage_errors("favorite_video_ids"):
        result = await session.execute(stmt)
    return set(result.scalars().all())


async def _decorate(session: AsyncSession, user: UserContext, videos: Sequence[models.Video]) -> List[VideoOut]:
    favorites = await favorite_video_ids(session, user.user_id, [video.id for video in videos])
    return [VideoOut(**video_fields(video), is_favorited=video.id in favorites) for video in videos]


async def list_videos(session: AsyncSession, user: UserContext) -> List[VideoOut]:
    stmt = select(models.Video).order_by(models.Video.created_at.desc(), models.Video.id.desc())
    with translate_storage_errors("list_videos"):
        videos = (await session.execute(stmt)).scalars().all()
    return await _decorate(session, user, videos)


async def create_video(session: AsyncSession, payload: VideoCreate) -> int:
    video = models.Video(**payload.model_dump())
    session.add(video)
    with translate_storage_errors("create_video"):
        await session.commit()
    logger.info("video added", extra={"video_id": video.id, "title": video.title})
    return video.id


async def delete_video(session: AsyncSession, video_id: int) -> None:
    await ensure_video_exists(session, video_id)
    with translate_storage_errors("delete_video"):
        for model in (models.VideoFavorite, models.VideoWatchHistory):
            await session.execute(delete(model).where(model.video_id == video_id))
        await session.execute(delete(models.Video).where(models.Video.id == video_id))
        await session.commit()
    logger.info("video deleted", extra={"video_id": video_id})


async def toggle_video_favorite(session: AsyncSession, user: UserContext, video_id: int) -> bool:
    await ensure_video_exists(session, video_id)
    return await toggle(session, models.VideoFavorite, user, video_id)


async def list_video_favorites(session: AsyncSession, user: UserContext) -> List[FavoriteVideo]:
    stmt = (
        select(models.Video, models.VideoFavorite.added_at)
        .join(models.VideoFavorite, models.VideoFavorite.video_id == models.Video.id)
        .where(models.VideoFavorite.user_id == user.user_id)
        .order_by(models.VideoFavorite.added_at.desc(), models.VideoFavorite.id.desc())
    )
    with translate_storage_errors("list_video_favorites"):
        rows = (await session.execute(stmt)).all()
    return [FavoriteVideo(**video_fields(video), favorited_at=added_at) for video, added_at in rows]


async def log_video_watch(session: AsyncSession, user: UserContext, payload: VideoWatchRequest) -> None:
    if payload.video_id is None:
        raise InvalidRequest("video_id is required")
    await ensure_video_exists(session, payload.video_id)

    session.add(
        models.VideoWatchHistory(
            user_id=user.user_id,
            video_id=payload.video_id,
            watch_duration=payload.watch_duration,
            completed=payload.completed,
        )
    )
    with translate_storage_errors("log_video_watch"):
        await session.commit()
    logger.info("video watch recorded", extra={"user_id": user.user_id, "video_id": payload.video_id})


async def recent_videos(session: AsyncSession, user: UserContext, limit: int = 20) -> List[RecentVideo]:
    history = models.VideoWatchHistory
    watches = (
        select(
            history.video_id,
            func.max(history.watched_at).label("last_watched_at"),
            func.max(history.id).label("last_entry"),
            func.count().label("watch_count"),
            func.coalesce(func.sum(history.watch_duration), 0).label("total_watch_duration"),
        )
        .where(history.user_id == user.user_id)
        .group_by(history.video_id)
        .subquery("recent_watches")
    )
    stmt = (
        select(models.Video, watches.c.last_watched_at, watches.c.watch_count, watches.c.total_watch_duration)
        .join(watches, watches.c.video_id == models.Video.id)
        .order_by(watches.c.last_watched_at.desc(), watches.c.last_entry.desc())
        .limit(max(1, limit))
    )
    with translate_storage_errors("recent_videos"):
        rows = (await session.execute(stmt)).all()

    favorites = await favorite_video_ids(session, user.user_id, [video.id for video, *_ in rows])
    return [
        RecentVideo(
            **video_fields(video),
            is_favorited=video.id in favorites,
            last_watched_at=last_watched_at,
            watch_count=int(watch_count),
            total_watch_duration=int(total),
        )
        for video, last_watched_at, watch_count, total in rows
    ]


async def search_videos(
    session: AsyncSession,
    user: UserContext,
    *,
    q: Optional[str] = None,
    category: Optional[str] = None,
) -> List[VideoOut]:
    stmt = select(models.Video)
    if q:
        term = f"%{q}%"
        stmt = stmt.where(or_(models.Video.title.ilike(term), models.Video.description.ilike(term)))
    if category:
        stmt = stmt.where(models.Video.category.ilike(f"%{category}%"))
    stmt = stmt.order_by(models.Video.title, models.Video.id)

    with translate_storage_errors("search_videos"):
        videos = (await session.execute(stmt)).scalars().all()
    return await _decorate(session, user, videos)


async def video_categories(session: AsyncSession) -> List[VideoCategory]:
    video_count = func.count(models.Video.id)
    stmt = (
        select(models.Video.category, video_count.label("video_count"))
        .where(models.Video.category.is_not(None))
        .group_by(models.Video.category)
        .order_by(video_count.desc(), models.Video.category)
    )
    with translate_storage_errors("video_categories"):
        rows = (await session.execute(stmt)).all()
    return [VideoCategory(category=category, video_count=int(count)) for category, count in rows]
