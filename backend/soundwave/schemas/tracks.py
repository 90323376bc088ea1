from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


def track_fields(track: Any) -> Dict[str, Any]:
    """Column values of a catalog row, without touching lazy relationships."""
    return {
        "id": track.id,
        "title": track.title,
        "artist": track.artist,
        "album": track.album,
        "url": track.url,
        "duration": track.duration,
        "cover_image": track.cover_image,
        "created_at": track.created_at,
    }


class TrackOut(BaseModel):
    id: int
    title: str
    artist: str
    album: Optional[str] = None
    url: str
    duration: Optional[int] = None
    cover_image: Optional[str] = None
    created_at: Optional[datetime] = None
    genres: List[str] = []
    is_favorited: bool = False


class Candidate(TrackOut):
    play_count: int = 0
    recommendation_score: Optional[float] = None


class FavoriteTrack(TrackOut):
    favorited_at: Optional[datetime] = None
    is_favorited: bool = True


class RecentTrack(TrackOut):
    last_played_at: Optional[datetime] = None
    play_count: int = 0


class TrackCreate(BaseModel):
    title: str = Field(..., min_length=1)
    artist: str = Field(..., min_length=1)
    album: Optional[str] = None
    url: str = Field(..., min_length=1)
    duration: Optional[int] = Field(default=None, ge=0)
    cover_image: Optional[str] = None
    genres: List[str] = []

    @field_validator("genres")
    @classmethod
    def _clean_genres(cls, value: List[str]) -> List[str]:
        cleaned: List[str] = []
        for genre in value:
            genre = genre.strip()
            if genre and genre not in cleaned:
                cleaned.append(genre)
        return cleaned


class TrackCreated(BaseModel):
    id: int
    message: str = "Track added successfully"


class BulkImportRequest(BaseModel):
    tracks: List[dict] = []


class BulkImportResult(BaseModel):
    success: bool = True
    success_count: int = 0
    error_count: int = 0
    errors: List[str] = []


class GenreCount(BaseModel):
    genre: str
    track_count: int


class MessageResponse(BaseModel):
    message: str
