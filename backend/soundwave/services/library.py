from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.security import UserContext
from ..db import models
from ..db.store import SqlCatalogStore, ensure_track_exists, translate_storage_errors
from ..schemas.interactions import GenrePlays, UserStats
from ..schemas.tracks import BulkImportResult, GenreCount, RecentTrack, TrackCreate, TrackOut, track_fields
from .errors import InvalidRequest

logger = logging.getLogger("soundwave.library")

MAX_REPORTED_IMPORT_ERRORS = 10
TOP_GENRES = 5


async def _decorate(session: AsyncSession, user: UserContext, tracks: Sequence[models.Track]) -> List[TrackOut]:
    store = SqlCatalogStore(session)
    track_ids = [track.id for track in tracks]
    genres = await store.genres_for(track_ids)
    favorites = await store.favorite_track_ids(user.user_id, track_ids)
    return [
        TrackOut(**track_fields(track), genres=genres.get(track.id, []), is_favorited=track.id in favorites)
        for track in tracks
    ]


async def list_tracks(session: AsyncSession, user: UserContext) -> List[TrackOut]:
    stmt = select(models.Track).order_by(models.Track.created_at.desc(), models.Track.id.desc())
    with translate_storage_errors("list_tracks"):
        tracks = (await session.execute(stmt)).scalars().all()
    return await _decorate(session, user, tracks)


def _new_track(payload: TrackCreate) -> models.Track:
    track = models.Track(
        title=payload.title,
        artist=payload.artist,
        album=payload.album,
        url=payload.url,
        duration=payload.duration,
        cover_image=payload.cover_image,
    )
    track.genre_tags = [models.TrackGenre(genre=genre) for genre in payload.genres]
    return track


async def create_track(session: AsyncSession, payload: TrackCreate) -> int:
    track = _new_track(payload)
    session.add(track)
    with translate_storage_errors("create_track"):
        await session.commit()
    logger.info("track added", extra={"track_id": track.id, "title": track.title})
    return track.id


async def bulk_import(session: AsyncSession, payloads: Sequence[Dict[str, Any]]) -> BulkImportResult:
    """Insert tracks one by one; a bad entry is reported without stopping the rest."""
    if not payloads:
        raise InvalidRequest("tracks must be a non-empty list")

    result = BulkImportResult()
    errors: List[str] = []
    for raw in payloads:
        title = raw.get("title") if isinstance(raw, dict) else None
        try:
            payload = TrackCreate.model_validate(raw)
        except ValidationError as exc:
            result.error_count += 1
            errors.append(f"{title or 'untitled'}: {exc.errors()[0]['msg']}")
            continue
        if payload.duration is None:
            payload.duration = 0
        session.add(_new_track(payload))
        try:
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.warning("bulk import entry failed", extra={"title": payload.title, "error": str(exc)})
            result.error_count += 1
            errors.append(f"{payload.title}: {exc.__class__.__name__}")
            continue
        result.success_count += 1

    result.errors = errors[:MAX_REPORTED_IMPORT_ERRORS]
    logger.info(
        "bulk import finished",
        extra={"success_count": result.success_count, "error_count": result.error_count},
    )
    return result


async def delete_track(session: AsyncSession, track_id: int) -> None:
    await ensure_track_exists(session, track_id)
    with translate_storage_errors("delete_track"):
        for model in (
            models.UserFavorite,
            models.ListeningHistory,
            models.UserInteraction,
            models.PlaylistTrack,
            models.TrackGenre,
        ):
            await session.execute(delete(model).where(model.track_id == track_id))
        await session.execute(delete(models.Track).where(models.Track.id == track_id))
        await session.commit()
    logger.info("track deleted", extra={"track_id": track_id})


async def search_tracks(
    session: AsyncSession,
    user: UserContext,
    *,
    q: Optional[str] = None,
    genre: Optional[str] = None,
    artist: Optional[str] = None,
) -> List[TrackOut]:
    stmt = select(models.Track)
    if q:
        term = f"%{q}%"
        stmt = stmt.where(
            or_(
                models.Track.title.ilike(term),
                models.Track.artist.ilike(term),
                models.Track.album.ilike(term),
            )
        )
    if genre:
        tagged = select(models.TrackGenre.track_id).where(models.TrackGenre.genre.ilike(f"%{genre}%"))
        stmt = stmt.where(models.Track.id.in_(tagged))
    if artist:
        stmt = stmt.where(models.Track.artist.ilike(f"%{artist}%"))
    stmt = stmt.order_by(models.Track.title, models.Track.id)

    with translate_storage_errors("search_tracks"):
        tracks = (await session.execute(stmt)).scalars().all()
    return await _decorate(session, user, tracks)


async def list_genres(session: AsyncSession) -> List[GenreCount]:
    track_count = func.count(models.TrackGenre.id)
    stmt = (
        select(models.TrackGenre.genre, track_count.label("track_count"))
        .group_by(models.TrackGenre.genre)
        .order_by(track_count.desc(), models.TrackGenre.genre)
    )
    with translate_storage_errors("list_genres"):
        rows = (await session.execute(stmt)).all()
    return [GenreCount(genre=genre, track_count=int(count)) for genre, count in rows]


async def recent_tracks(session: AsyncSession, user: UserContext, limit: int = 20) -> List[RecentTrack]:
    history = models.ListeningHistory
    plays = (
        select(
            history.track_id,
            func.max(history.played_at).label("last_played_at"),
            func.max(history.id).label("last_entry"),
            func.count().label("play_count"),
        )
        .where(history.user_id == user.user_id)
        .group_by(history.track_id)
        .subquery("recent_plays")
    )
    stmt = (
        select(models.Track, plays.c.last_played_at, plays.c.play_count)
        .join(plays, plays.c.track_id == models.Track.id)
        .order_by(plays.c.last_played_at.desc(), plays.c.last_entry.desc())
        .limit(max(1, limit))
    )
    with translate_storage_errors("recent_tracks"):
        rows = (await session.execute(stmt)).all()

    decorated = await _decorate(session, user, [track for track, _, _ in rows])
    return [
        RecentTrack(**item.model_dump(), last_played_at=last_played_at, play_count=int(play_count))
        for item, (_, last_played_at, play_count) in zip(decorated, rows)
    ]


async def user_stats(session: AsyncSession, user: UserContext) -> UserStats:
    history = models.ListeningHistory
    totals = select(func.coalesce(func.sum(history.play_duration), 0), func.count(history.id)).where(
        history.user_id == user.user_id
    )
    favorites = select(func.count(models.UserFavorite.id)).where(models.UserFavorite.user_id == user.user_id)
    genre_plays = func.count(history.id)
    top_genres = (
        select(models.TrackGenre.genre, genre_plays.label("count"))
        .join(history, history.track_id == models.TrackGenre.track_id)
        .where(history.user_id == user.user_id)
        .group_by(models.TrackGenre.genre)
        .order_by(genre_plays.desc(), models.TrackGenre.genre)
        .limit(TOP_GENRES)
    )
    with translate_storage_errors("user_stats"):
        total_time, total_plays = (await session.execute(totals)).one()
        favorite_count = await session.scalar(favorites)
        genre_rows = (await session.execute(top_genres)).all()

    return UserStats(
        total_listening_time=int(total_time or 0),
        total_plays=int(total_plays or 0),
        favorite_count=int(favorite_count or 0),
        top_genres=[GenrePlays(genre=genre, count=int(count)) for genre, count in genre_rows],
    )
