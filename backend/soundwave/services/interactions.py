from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import func

from ..core.security import UserContext
from ..db import models
from ..db.store import ensure_track_exists, translate_storage_errors
from ..schemas.interactions import TrackInteractionRequest
from .errors import InvalidRequest, StorageUnavailable

logger = logging.getLogger("soundwave.interactions")

PLAY = "play"
DEFAULT_COMPLETED_SECONDS = 30


def _insert_for(session: AsyncSession):
    # Both dialects implement INSERT ... ON CONFLICT DO UPDATE with the same API.
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise StorageUnavailable(f"interaction upsert not supported on {dialect}")


async def record_interaction(
    session: AsyncSession,
    user_id: str,
    track_id: int,
    interaction_type: str,
    play_duration: int = 0,
) -> None:
    """Bump the (user, track, type) counter, adding to the accumulated play time."""
    insert = _insert_for(session)
    stmt = insert(models.UserInteraction).values(
        user_id=user_id,
        track_id=track_id,
        interaction_type=interaction_type,
        interaction_count=1,
        total_play_time=play_duration,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "track_id", "interaction_type"],
        set_={
            "interaction_count": models.UserInteraction.interaction_count + 1,
            "total_play_time": models.UserInteraction.total_play_time + play_duration,
            "last_interaction": func.now(),
        },
    )
    with translate_storage_errors("record_interaction"):
        await session.execute(stmt)


async def record_history(
    session: AsyncSession,
    user_id: str,
    track_id: int,
    play_duration: int,
    completed: bool,
) -> models.ListeningHistory:
    entry = models.ListeningHistory(
        user_id=user_id,
        track_id=track_id,
        play_duration=play_duration,
        completed=completed,
    )
    session.add(entry)
    with translate_storage_errors("record_history"):
        await session.flush()
    return entry


async def get_interaction(
    session: AsyncSession,
    user_id: str,
    track_id: int,
    interaction_type: str,
) -> Optional[models.UserInteraction]:
    stmt = select(models.UserInteraction).where(
        models.UserInteraction.user_id == user_id,
        models.UserInteraction.track_id == track_id,
        models.UserInteraction.interaction_type == interaction_type,
    )
    with translate_storage_errors("get_interaction"):
        result = await session.execute(stmt.execution_options(populate_existing=True))
    return result.scalars().first()


async def log_track_interaction(
    session: AsyncSession,
    user: UserContext,
    payload: TrackInteractionRequest,
    *,
    completed_threshold: int = DEFAULT_COMPLETED_SECONDS,
) -> None:
    if payload.track_id is None:
        raise InvalidRequest("track_id is required")
    interaction_type = (payload.interaction_type or "").strip()
    if not interaction_type:
        raise InvalidRequest("interaction_type is required")

    await ensure_track_exists(session, payload.track_id)
    duration = payload.play_duration or 0

    await record_interaction(session, user.user_id, payload.track_id, interaction_type, duration)
    if interaction_type == PLAY:
        await record_history(
            session,
            user.user_id,
            payload.track_id,
            duration,
            completed=duration > completed_threshold,
        )
    with translate_storage_errors("log_track_interaction"):
        await session.commit()
    logger.info(
        "track interaction recorded",
        extra={"user_id": user.user_id, "track_id": payload.track_id, "interaction_type": interaction_type},
    )
