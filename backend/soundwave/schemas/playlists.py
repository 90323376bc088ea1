from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .tracks import TrackOut


class PlaylistCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None


class PlaylistOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class UserPlaylistCreate(PlaylistCreate):
    is_public: bool = False


class UserPlaylistOut(PlaylistOut):
    user_id: str
    is_public: bool = False
    track_count: int = 0


class PlaylistCreated(BaseModel):
    id: int
    message: str = "Playlist created successfully"


class PlaylistTrackAdd(BaseModel):
    track_id: Optional[int] = None


class PlaylistTrackOut(TrackOut):
    position: int
    added_at: Optional[datetime] = None
