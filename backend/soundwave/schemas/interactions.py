from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class TrackInteractionRequest(BaseModel):
    # Optional so that a missing id surfaces as InvalidRequest rather than a schema error.
    track_id: Optional[int] = None
    interaction_type: Optional[str] = None
    play_duration: int = Field(default=0, ge=0)


class SuccessResponse(BaseModel):
    success: bool = True


class FavoriteToggleResponse(BaseModel):
    favorited: bool


class GenrePlays(BaseModel):
    genre: str
    count: int


class UserStats(BaseModel):
    total_listening_time: int = 0
    total_plays: int = 0
    favorite_count: int = 0
    top_genres: List[GenrePlays] = []


class HealthResponse(BaseModel):
    status: str = "OK"
    database: str
    timestamp: str
