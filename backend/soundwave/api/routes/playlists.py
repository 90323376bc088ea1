from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.security import UserContext, resolve_user, verify_service_token
from ...schemas.playlists import (
    PlaylistCreate,
    PlaylistCreated,
    PlaylistOut,
    PlaylistTrackAdd,
    PlaylistTrackOut,
    UserPlaylistCreate,
    UserPlaylistOut,
)
from ...schemas.tracks import MessageResponse
from ...services import playlists
from ..deps import get_db_session

router = APIRouter(prefix="/api", tags=["playlists"])
admin = APIRouter(prefix="/api", tags=["playlists-admin"], dependencies=[Depends(verify_service_token)])


@router.get("/playlists", response_model=List[PlaylistOut])
async def get_playlists(session: AsyncSession = Depends(get_db_session)) -> List[PlaylistOut]:
    return await playlists.list_playlists(session)


@admin.post("/playlists", response_model=PlaylistCreated)
async def add_playlist(payload: PlaylistCreate, session: AsyncSession = Depends(get_db_session)) -> PlaylistCreated:
    playlist_id = await playlists.create_playlist(session, payload)
    return PlaylistCreated(id=playlist_id)


@router.get("/user-playlists", response_model=List[UserPlaylistOut])
async def get_user_playlists(
    user: UserContext = Depends(resolve_user),
    session: AsyncSession = Depends(get_db_session),
) -> List[UserPlaylistOut]:
    return await playlists.list_user_playlists(session, user)


@router.post("/user-playlists", response_model=PlaylistCreated)
async def add_user_playlist(
    payload: UserPlaylistCreate,
    *,
    user: UserContext = Depends(resolve_user),
    session: AsyncSession = Depends(get_db_session),
) -> PlaylistCreated:
    playlist_id = await playlists.create_user_playlist(session, user, payload)
    return PlaylistCreated(id=playlist_id)


@router.post("/user-playlists/{playlist_id}/tracks", response_model=MessageResponse)
async def add_playlist_track(
    playlist_id: int,
    payload: PlaylistTrackAdd,
    *,
    user: UserContext = Depends(resolve_user),
    session: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await playlists.add_track_to_playlist(session, user, playlist_id, payload.track_id)
    return MessageResponse(message="Track added to playlist successfully")


@router.get("/user-playlists/{playlist_id}/tracks", response_model=List[PlaylistTrackOut])
async def get_playlist_tracks(
    playlist_id: int,
    *,
    user: UserContext = Depends(resolve_user),
    session: AsyncSession = Depends(get_db_session),
) -> List[PlaylistTrackOut]:
    return await playlists.playlist_tracks(session, user, playlist_id)


@router.delete("/user-playlists/{playlist_id}", response_model=MessageResponse)
async def remove_user_playlist(
    playlist_id: int,
    *,
    user: UserContext = Depends(resolve_user),
    session: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await playlists.delete_user_playlist(session, user, playlist_id)
    return MessageResponse(message="Playlist deleted successfully")
