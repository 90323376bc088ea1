from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.security import UserContext, resolve_user, verify_service_token
from ...schemas.tracks import (
    BulkImportRequest,
    BulkImportResult,
    GenreCount,
    MessageResponse,
    TrackCreate,
    TrackCreated,
    TrackOut,
)
from ...services import library
from ..deps import get_db_session

router = APIRouter(prefix="/api", tags=["catalog"])
admin = APIRouter(prefix="/api", tags=["catalog-admin"], dependencies=[Depends(verify_service_token)])


@router.get("/tracks", response_model=List[TrackOut])
async def get_tracks(
    user: UserContext = Depends(resolve_user),
    session: AsyncSession = Depends(get_db_session),
) -> List[TrackOut]:
    return await library.list_tracks(session, user)


@router.get("/search", response_model=List[TrackOut])
async def search(
    q: Optional[str] = None,
    genre: Optional[str] = None,
    artist: Optional[str] = None,
    *,
    user: UserContext = Depends(resolve_user),
    session: AsyncSession = Depends(get_db_session),
) -> List[TrackOut]:
    return await library.search_tracks(session, user, q=q, genre=genre, artist=artist)


@router.get("/genres", response_model=List[GenreCount])
async def get_genres(session: AsyncSession = Depends(get_db_session)) -> List[GenreCount]:
    return await library.list_genres(session)


@admin.post("/tracks", response_model=TrackCreated)
async def add_track(payload: TrackCreate, session: AsyncSession = Depends(get_db_session)) -> TrackCreated:
    track_id = await library.create_track(session, payload)
    return TrackCreated(id=track_id)


@admin.post("/tracks/bulk", response_model=BulkImportResult)
async def bulk_add_tracks(
    payload: BulkImportRequest,
    session: AsyncSession = Depends(get_db_session),
) -> BulkImportResult:
    return await library.bulk_import(session, payload.tracks)


@admin.delete("/tracks/{track_id}", response_model=MessageResponse)
async def remove_track(track_id: int, session: AsyncSession = Depends(get_db_session)) -> MessageResponse:
    await library.delete_track(session, track_id)
    return MessageResponse(message="Track deleted successfully")
