from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import AsyncIterator, Iterable, List, Sequence

import numpy as np
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from soundwave.db import models
from soundwave.db.base import Base

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return NOW


def days_ago(days: float) -> datetime:
    return NOW - timedelta(days=days)


@asynccontextmanager
async def memory_session() -> AsyncIterator[AsyncSession]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    maker = async_sessionmaker(engine, expire_on_commit=False)
    try:
        async with maker() as session:
            yield session
    finally:
        await engine.dispose()


@asynccontextmanager
async def file_sessions(path: Path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """A session factory over an on-disk database, for tests that need two connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{path}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        await engine.dispose()


async def add_track(
    session: AsyncSession,
    title: str,
    *,
    genres: Iterable[str] = (),
    created_at: datetime | None = None,
    artist: str = "Demo Artist",
    album: str | None = None,
) -> models.Track:
    track = models.Track(
        title=title,
        artist=artist,
        album=album,
        url=f"https://cdn.example.com/{title.lower().replace(' ', '-')}.mp3",
        duration=200,
    )
    if created_at is not None:
        track.created_at = created_at
    track.genre_tags = [models.TrackGenre(genre=genre) for genre in genres]
    session.add(track)
    await session.commit()
    return track


async def add_plays(session: AsyncSession, track: models.Track, count: int, *, user_id: str = "guest") -> None:
    for _ in range(count):
        session.add(models.ListeningHistory(user_id=user_id, track_id=track.id, play_duration=60, completed=True))
    await session.commit()


async def add_favorite(session: AsyncSession, user_id: str, track: models.Track) -> None:
    session.add(models.UserFavorite(user_id=user_id, track_id=track.id))
    await session.commit()


class ScriptedRandom:
    """Stands in for ``numpy.random.Generator`` with predetermined draws."""

    def __init__(self, draws: Sequence[float] = (), permutation: Sequence[int] | None = None) -> None:
        self.draws = list(draws)
        self._permutation = list(permutation) if permutation is not None else None

    def random(self, size: int) -> np.ndarray:
        values: List[float] = (self.draws + [0.0] * size)[:size]
        return np.asarray(values, dtype=np.float64)

    def permutation(self, n: int) -> np.ndarray:
        if self._permutation is None:
            return np.arange(n)
        return np.asarray(self._permutation[:n])


async def add_video(
    session: AsyncSession,
    title: str,
    *,
    category: str | None = None,
    description: str | None = None,
) -> models.Video:
    video = models.Video(
        title=title,
        description=description,
        url=f"https://cdn.example.com/{title.lower().replace(' ', '-')}.mp4",
        duration=300,
        category=category,
    )
    session.add(video)
    await session.commit()
    return video
