from __future__ import annotations

import logging
from typing import List

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.security import UserContext
from ..db import models
from ..db.store import SqlCatalogStore, ensure_track_exists, translate_storage_errors
from ..schemas.playlists import (
    PlaylistCreate,
    PlaylistOut,
    PlaylistTrackOut,
    UserPlaylistCreate,
    UserPlaylistOut,
)
from ..schemas.tracks import track_fields
from .errors import InvalidRequest, PlaylistAccessDenied

logger = logging.getLogger("soundwave.playlists")


async def list_playlists(session: AsyncSession) -> List[PlaylistOut]:
    stmt = select(models.Playlist).order_by(models.Playlist.created_at.desc(), models.Playlist.id.desc())
    with translate_storage_errors("list_playlists"):
        playlists = (await session.execute(stmt)).scalars().all()
    return [
        PlaylistOut(id=p.id, name=p.name, description=p.description, created_at=p.created_at) for p in playlists
    ]


async def create_playlist(session: AsyncSession, payload: PlaylistCreate) -> int:
    playlist = models.Playlist(name=payload.name, description=payload.description)
    session.add(playlist)
    with translate_storage_errors("create_playlist"):
        await session.commit()
    logger.info("playlist created", extra={"playlist_id": playlist.id})
    return playlist.id


async def list_user_playlists(session: AsyncSession, user: UserContext) -> List[UserPlaylistOut]:
    """The user's own playlists plus every public one, newest first."""
    track_count = func.count(models.PlaylistTrack.id)
    stmt = (
        select(models.UserPlaylist, track_count)
        .outerjoin(models.PlaylistTrack, models.PlaylistTrack.playlist_id == models.UserPlaylist.id)
        .where(or_(models.UserPlaylist.user_id == user.user_id, models.UserPlaylist.is_public.is_(True)))
        .group_by(models.UserPlaylist.id)
        .order_by(models.UserPlaylist.created_at.desc(), models.UserPlaylist.id.desc())
    )
    with translate_storage_errors("list_user_playlists"):
        rows = (await session.execute(stmt)).all()
    return [
        UserPlaylistOut(
            id=p.id,
            user_id=p.user_id,
            name=p.name,
            description=p.description,
            is_public=p.is_public,
            created_at=p.created_at,
            track_count=int(count),
        )
        for p, count in rows
    ]


async def create_user_playlist(session: AsyncSession, user: UserContext, payload: UserPlaylistCreate) -> int:
    playlist = models.UserPlaylist(
        user_id=user.user_id,
        name=payload.name,
        description=payload.description,
        is_public=payload.is_public,
    )
    session.add(playlist)
    with translate_storage_errors("create_user_playlist"):
        await session.commit()
    logger.info("user playlist created", extra={"playlist_id": playlist.id, "user_id": user.user_id})
    return playlist.id


async def _load_playlist(session: AsyncSession, user: UserContext, playlist_id: int, *, readable: bool = False):
    with translate_storage_errors("load_playlist"):
        playlist = await session.get(models.UserPlaylist, playlist_id)
    if playlist is None:
        raise PlaylistAccessDenied()
    if playlist.user_id != user.user_id and not (readable and playlist.is_public):
        raise PlaylistAccessDenied()
    return playlist


async def add_track_to_playlist(
    session: AsyncSession,
    user: UserContext,
    playlist_id: int,
    track_id: int | None,
) -> bool:
    """Append ``track_id`` after the last position; False when it was already there."""
    await _load_playlist(session, user, playlist_id)
    if track_id is None:
        raise InvalidRequest("track_id is required")
    await ensure_track_exists(session, track_id)

    entries = models.PlaylistTrack
    with translate_storage_errors("add_track_to_playlist"):
        present = await session.scalar(
            select(entries.id).where(entries.playlist_id == playlist_id, entries.track_id == track_id)
        )
        if present is not None:
            return False
        last = await session.scalar(
            select(func.coalesce(func.max(entries.position), 0)).where(entries.playlist_id == playlist_id)
        )
        session.add(entries(playlist_id=playlist_id, track_id=track_id, position=int(last or 0) + 1))
        await session.commit()
    logger.info("track added to playlist", extra={"playlist_id": playlist_id, "track_id": track_id})
    return True


async def playlist_tracks(session: AsyncSession, user: UserContext, playlist_id: int) -> List[PlaylistTrackOut]:
    await _load_playlist(session, user, playlist_id, readable=True)
    stmt = (
        select(models.Track, models.PlaylistTrack.position, models.PlaylistTrack.added_at)
        .join(models.PlaylistTrack, models.PlaylistTrack.track_id == models.Track.id)
        .where(models.PlaylistTrack.playlist_id == playlist_id)
        .order_by(models.PlaylistTrack.position)
    )
    with translate_storage_errors("playlist_tracks"):
        rows = (await session.execute(stmt)).all()

    store = SqlCatalogStore(session)
    track_ids = [track.id for track, _, _ in rows]
    genres = await store.genres_for(track_ids)
    favorites = await store.favorite_track_ids(user.user_id, track_ids)
    return [
        PlaylistTrackOut(
            **track_fields(track),
            genres=genres.get(track.id, []),
            is_favorited=track.id in favorites,
            position=position,
            added_at=added_at,
        )
        for track, position, added_at in rows
    ]


async def delete_user_playlist(session: AsyncSession, user: UserContext, playlist_id: int) -> None:
    await _load_playlist(session, user, playlist_id)
    with translate_storage_errors("delete_user_playlist"):
        await session.execute(delete(models.PlaylistTrack).where(models.PlaylistTrack.playlist_id == playlist_id))
        await session.execute(delete(models.UserPlaylist).where(models.UserPlaylist.id == playlist_id))
        await session.commit()
    logger.info("user playlist deleted", extra={"playlist_id": playlist_id, "user_id": user.user_id})
