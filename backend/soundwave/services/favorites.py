from __future__ import annotations

import logging
from typing import List, Type, Union

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.security import UserContext
from ..db import models
from ..db.store import SqlCatalogStore, ensure_track_exists, translate_storage_errors
from ..schemas.tracks import FavoriteTrack, track_fields

logger = logging.getLogger("soundwave.favorites")

FavoriteModel = Union[Type[models.UserFavorite], Type[models.VideoFavorite]]


async def remove_favorite(session: AsyncSession, model: FavoriteModel, user_id: str, item_id: int) -> bool:
    """Delete the ``(user, item)`` pair; True when a row went away."""
    item = getattr(model, model.item_key)
    with translate_storage_errors("remove_favorite"):
        removed = await session.execute(delete(model).where(model.user_id == user_id, item == item_id))
        await session.commit()
    return bool(removed.rowcount)


async def add_favorite(session: AsyncSession, model: FavoriteModel, user_id: str, item_id: int) -> bool:
    """Store the ``(user, item)`` pair; True when this call inserted the row.

    The unique constraint keeps one row per pair, so a request that loses a
    race with a concurrent insert ends up favorited all the same.
    """
    session.add(model(user_id=user_id, **{model.item_key: item_id}))
    with translate_storage_errors("add_favorite"):
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            return False
    return True


async def toggle(session: AsyncSession, model: FavoriteModel, user: UserContext, item_id: int) -> bool:
    fields = {"user_id": user.user_id, model.item_key: item_id}
    if await remove_favorite(session, model, user.user_id, item_id):
        logger.info("favorite removed", extra=fields)
        return False
    inserted = await add_favorite(session, model, user.user_id, item_id)
    logger.info("favorite added", extra={**fields, "already_present": not inserted})
    return True


async def toggle_favorite(session: AsyncSession, user: UserContext, track_id: int) -> bool:
    """Flip the favorite flag for ``(user, track)``; returns the new state."""
    await ensure_track_exists(session, track_id)
    return await toggle(session, models.UserFavorite, user, track_id)


async def list_favorites(session: AsyncSession, user: UserContext) -> List[FavoriteTrack]:
    stmt = (
        select(models.Track, models.UserFavorite.added_at)
        .join(models.UserFavorite, models.UserFavorite.track_id == models.Track.id)
        .where(models.UserFavorite.user_id == user.user_id)
        .order_by(models.UserFavorite.added_at.desc(), models.UserFavorite.id.desc())
    )
    with translate_storage_errors("list_favorites"):
        rows = (await session.execute(stmt)).all()
    genres = await SqlCatalogStore(session).genres_for([track.id for track, _ in rows])
    return [
        FavoriteTrack(**track_fields(track), genres=genres.get(track.id, []), favorited_at=added_at)
        for track, added_at in rows
    ]
