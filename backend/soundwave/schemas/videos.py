from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


def video_fields(video: Any) -> Dict[str, Any]:
    return {
        "id": video.id,
        "title": video.title,
        "description": video.description,
        "url": video.url,
        "thumbnail": video.thumbnail,
        "duration": video.duration,
        "category": video.category,
        "created_at": video.created_at,
    }


class VideoOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    url: str
    thumbnail: Optional[str] = None
    duration: Optional[int] = None
    category: Optional[str] = None
    created_at: Optional[datetime] = None
    is_favorited: bool = False


class FavoriteVideo(VideoOut):
    favorited_at: Optional[datetime] = None
    is_favorited: bool = True


class RecentVideo(VideoOut):
    last_watched_at: Optional[datetime] = None
    watch_count: int = 0
    total_watch_duration: int = 0


class VideoCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    url: str = Field(..., min_length=1)
    thumbnail: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0)
    category: Optional[str] = None


class VideoCreated(BaseModel):
    id: int
    message: str = "Video added successfully"


class VideoWatchRequest(BaseModel):
    # Optional for the same reason as TrackInteractionRequest.track_id.
    video_id: Optional[int] = None
    watch_duration: int = Field(default=0, ge=0)
    completed: bool = False


class VideoCategory(BaseModel):
    category: str
    video_count: int
