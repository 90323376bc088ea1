from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Protocol, Sequence, Set

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..services.errors import StorageUnavailable, TrackNotFound, VideoNotFound
from . import models

logger = logging.getLogger("soundwave.store")


@contextmanager
def translate_storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("storage failure during %s", operation, exc_info=exc)
        raise StorageUnavailable(f"storage unavailable during {operation}") from exc


async def ensure_track_exists(session: AsyncSession, track_id: int) -> None:
    with translate_storage_errors("ensure_track_exists"):
        found = await session.scalar(select(models.Track.id).where(models.Track.id == track_id))
    if found is None:
        raise TrackNotFound(track_id)


async def ensure_video_exists(session: AsyncSession, video_id: int) -> None:
    with translate_storage_errors("ensure_video_exists"):
        found = await session.scalar(select(models.Video.id).where(models.Video.id == video_id))
    if found is None:
        raise VideoNotFound(video_id)


class CatalogStore(Protocol):
    """Read-side queries the discovery engine needs from the catalog."""

    async def tracks_by_popularity(self, limit: int) -> List[models.Track]:
        ...

    async def newest_tracks(self, limit: int) -> List[models.Track]:
        ...

    async def all_tracks(self) -> List[models.Track]:
        ...

    async def find_tracks_by_genre_membership(self, user_id: str) -> List[models.Track]:
        ...

    async def aggregate_play_counts(self, track_ids: Optional[Sequence[int]] = None) -> Dict[int, int]:
        ...

    async def genres_for(self, track_ids: Sequence[int]) -> Dict[int, List[str]]:
        ...

    async def favorite_track_ids(self, user_id: str, track_ids: Optional[Sequence[int]] = None) -> Set[int]:
        ...


def play_counts_subquery():
    return (
        select(models.ListeningHistory.track_id, func.count().label("play_count"))
        .group_by(models.ListeningHistory.track_id)
        .subquery("play_counts")
    )


class SqlCatalogStore:
    """`CatalogStore` over SQLAlchemy; the same statements run on SQLite and PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def tracks_by_popularity(self, limit: int) -> List[models.Track]:
        plays = play_counts_subquery()
        play_count = func.coalesce(plays.c.play_count, 0)
        stmt = (
            select(models.Track)
            .outerjoin(plays, plays.c.track_id == models.Track.id)
            .order_by(play_count.desc(), models.Track.created_at.desc(), models.Track.id.desc())
            .limit(limit)
        )
        with translate_storage_errors("tracks_by_popularity"):
            result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def newest_tracks(self, limit: int) -> List[models.Track]:
        stmt = select(models.Track).order_by(models.Track.created_at.desc(), models.Track.id.desc()).limit(limit)
        with translate_storage_errors("newest_tracks"):
            result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def all_tracks(self) -> List[models.Track]:
        with translate_storage_errors("all_tracks"):
            result = await self.session.execute(select(models.Track).order_by(models.Track.id))
        return list(result.scalars().all())

    async def find_tracks_by_genre_membership(self, user_id: str) -> List[models.Track]:
        favorites = select(models.UserFavorite.track_id).where(models.UserFavorite.user_id == user_id)
        favorite_genres = (
            select(models.TrackGenre.genre).where(models.TrackGenre.track_id.in_(favorites)).distinct()
        )
        sharing = select(models.TrackGenre.track_id).where(models.TrackGenre.genre.in_(favorite_genres))
        stmt = (
            select(models.Track)
            .where(models.Track.id.in_(sharing), models.Track.id.not_in(favorites))
            .order_by(models.Track.id)
        )
        with translate_storage_errors("find_tracks_by_genre_membership"):
            result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def aggregate_play_counts(self, track_ids: Optional[Sequence[int]] = None) -> Dict[int, int]:
        if track_ids is not None and not track_ids:
            return {}
        stmt = select(models.ListeningHistory.track_id, func.count()).group_by(models.ListeningHistory.track_id)
        if track_ids is not None:
            stmt = stmt.where(models.ListeningHistory.track_id.in_(list(track_ids)))
        with translate_storage_errors("aggregate_play_counts"):
            result = await self.session.execute(stmt)
        return {track_id: int(count) for track_id, count in result.all()}

    async def genres_for(self, track_ids: Sequence[int]) -> Dict[int, List[str]]:
        if not track_ids:
            return {}
        stmt = (
            select(models.TrackGenre.track_id, models.TrackGenre.genre)
            .where(models.TrackGenre.track_id.in_(list(track_ids)))
            .order_by(models.TrackGenre.id)
        )
        with translate_storage_errors("genres_for"):
            result = await self.session.execute(stmt)
        genres: Dict[int, List[str]] = {}
        for track_id, genre in result.all():
            bucket = genres.setdefault(track_id, [])
            if genre not in bucket:
                bucket.append(genre)
        return genres

    async def favorite_track_ids(self, user_id: str, track_ids: Optional[Sequence[int]] = None) -> Set[int]:
        if track_ids is not None and not track_ids:
            return set()
        stmt = select(models.UserFavorite.track_id).where(models.UserFavorite.user_id == user_id)
        if track_ids is not None:
            stmt = stmt.where(models.UserFavorite.track_id.in_(list(track_ids)))
        with translate_storage_errors("favorite_track_ids"):
            result = await self.session.execute(stmt)
        return set(result.scalars().all())
