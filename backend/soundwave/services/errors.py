from __future__ import annotations


class SoundwaveError(Exception):
    status_code: int = 500
    message: str = "internal error"

    def __init__(self, message: str | None = None) -> None:
        if message:
            self.message = message
        super().__init__(self.message)


class StorageUnavailable(SoundwaveError):
    """The backing store could not serve a read or write; nothing was returned."""

    status_code = 503
    message = "storage unavailable"


class InvalidRequest(SoundwaveError):
    status_code = 400
    message = "invalid request"


class TrackNotFound(SoundwaveError):
    status_code = 404
    message = "track not found"

    def __init__(self, track_id: int) -> None:
        self.track_id = track_id
        super().__init__(f"track {track_id} not found")


class VideoNotFound(SoundwaveError):
    status_code = 404
    message = "video not found"

    def __init__(self, video_id: int) -> None:
        self.video_id = video_id
        super().__init__(f"video {video_id} not found")


class PlaylistAccessDenied(SoundwaveError):
    """Unknown playlist, or one owned by another user; the two are not told apart."""

    status_code = 403
    message = "Playlist not found or access denied"
