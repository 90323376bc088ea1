from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..core.security import UserContext
from ..db import models
from ..db.store import CatalogStore
from ..schemas.tracks import Candidate, track_fields

logger = logging.getLogger("soundwave.discovery")

POPULAR = "popular"
GENRE_BASED = "genre-based"
NEW = "new"
MIXED = "mixed"
ALGORITHMS = (POPULAR, GENRE_BASED, NEW, MIXED)
DEFAULT_ALGORITHM = MIXED
DEFAULT_LIMIT = 20

SECONDS_PER_DAY = 86400.0

Ranked = List[Tuple[models.Track, Optional[float]]]
Strategy = Callable[[UserContext], Awaitable[Tuple[Ranked, Optional[Dict[int, int]]]]]


@dataclass(frozen=True, slots=True)
class MixedWeights:
    plays: float = 0.3
    age_days: float = -0.1
    randomness: float = 0.4


def normalize_algorithm(value: Optional[str]) -> str:
    if value:
        candidate = value.strip().lower()
        if candidate in ALGORITHMS:
            return candidate
    return DEFAULT_ALGORITHM


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def days_since(created_at: Optional[datetime], now: datetime) -> float:
    if created_at is None:
        return 0.0
    if created_at.tzinfo is None:
        # SQLite hands back naive CURRENT_TIMESTAMP values, which are UTC
        created_at = created_at.replace(tzinfo=timezone.utc)
    return (now - created_at).total_seconds() / SECONDS_PER_DAY


def mixed_scores(
    play_counts: Sequence[float],
    ages_in_days: Sequence[float],
    draws: Sequence[float],
    weights: MixedWeights = MixedWeights(),
) -> np.ndarray:
    plays = np.asarray(play_counts, dtype=np.float64)
    ages = np.asarray(ages_in_days, dtype=np.float64)
    noise = np.asarray(draws, dtype=np.float64)
    return weights.plays * plays + weights.age_days * ages + weights.randomness * noise


class DiscoveryEngine:
    """Ranks catalog tracks for a listener.

    Four strategies are available: ``popular`` (all-user play count, newest
    first on ties), ``genre-based`` (unfavorited tracks sharing a genre with the
    listener's favorites, shuffled), ``new`` (insertion order, newest first) and
    ``mixed``, a blend of play count, age and a per-track random draw.

    Randomness comes from ``rng`` and "now" from ``clock`` so callers can pin
    both down.
    """

    def __init__(
        self,
        store: CatalogStore,
        *,
        rng: np.random.Generator | None = None,
        clock: Callable[[], datetime] | None = None,
        limit: int = DEFAULT_LIMIT,
        weights: MixedWeights | None = None,
    ) -> None:
        self.store = store
        self.rng = rng if rng is not None else np.random.default_rng()
        self.clock = clock or utc_now
        self.limit = max(0, min(limit, DEFAULT_LIMIT))
        self.weights = weights or MixedWeights()
        self._strategies: Dict[str, Strategy] = {
            POPULAR: self._popular,
            GENRE_BASED: self._genre_based,
            NEW: self._new,
            MIXED: self._mixed,
        }

    async def discover(self, user: UserContext, algorithm: Optional[str] = None) -> List[Candidate]:
        name = normalize_algorithm(algorithm)
        if algorithm and name != algorithm:
            logger.debug("discovery algorithm %r resolved to %s", algorithm, name)
        ranked, play_counts = await self._strategies[name](user)
        candidates = await self._to_candidates(user, ranked[: self.limit], play_counts)
        logger.debug(
            "discovery ranked",
            extra={"algorithm": name, "user_id": user.user_id, "results": len(candidates)},
        )
        return candidates

    async def _popular(self, user: UserContext) -> Tuple[Ranked, Optional[Dict[int, int]]]:
        tracks = await self.store.tracks_by_popularity(self.limit)
        return [(track, None) for track in tracks], None

    async def _new(self, user: UserContext) -> Tuple[Ranked, Optional[Dict[int, int]]]:
        tracks = await self.store.newest_tracks(self.limit)
        return [(track, None) for track in tracks], None

    async def _genre_based(self, user: UserContext) -> Tuple[Ranked, Optional[Dict[int, int]]]:
        tracks = await self.store.find_tracks_by_genre_membership(user.user_id)
        if not tracks:
            return [], None
        order = self.rng.permutation(len(tracks))
        return [(tracks[int(i)], None) for i in order], None

    async def _mixed(self, user: UserContext) -> Tuple[Ranked, Optional[Dict[int, int]]]:
        tracks = await self.store.all_tracks()
        if not tracks:
            return [], {}
        play_counts = await self.store.aggregate_play_counts()
        now = self.clock()
        scores = mixed_scores(
            [play_counts.get(track.id, 0) for track in tracks],
            [days_since(track.created_at, now) for track in tracks],
            self.rng.random(len(tracks)),
            self.weights,
        )
        # stable sort keeps catalog order among equal scores
        order = np.argsort(-scores, kind="stable")
        return [(tracks[int(i)], float(scores[int(i)])) for i in order], play_counts

    async def _to_candidates(
        self,
        user: UserContext,
        ranked: Ranked,
        play_counts: Optional[Dict[int, int]],
    ) -> List[Candidate]:
        if not ranked:
            return []
        track_ids = [track.id for track, _ in ranked]
        if play_counts is None:
            play_counts = await self.store.aggregate_play_counts(track_ids)
        genres = await self.store.genres_for(track_ids)
        favorites = await self.store.favorite_track_ids(user.user_id, track_ids)
        return [
            Candidate(
                **track_fields(track),
                genres=genres.get(track.id, []),
                play_count=play_counts.get(track.id, 0),
                is_favorited=track.id in favorites,
                recommendation_score=score,
            )
            for track, score in ranked
        ]
