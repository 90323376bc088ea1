from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import func, select

from soundwave.core.security import UserContext
from soundwave.db import models
from soundwave.schemas.interactions import TrackInteractionRequest
from soundwave.schemas.tracks import TrackCreate
from soundwave.services import library
from soundwave.services.errors import InvalidRequest, TrackNotFound
from soundwave.services.favorites import toggle_favorite
from soundwave.services.interactions import log_track_interaction

from support import add_favorite, add_plays, add_track, memory_session

ALICE = UserContext(user_id="alice")


def test_create_track_stores_genres():
    async def scenario():
        async with memory_session() as session:
            track_id = await library.create_track(
                session,
                TrackCreate(
                    title="Kalimba",
                    artist="Mr. Scruff",
                    url="https://cdn.example.com/kalimba.mp3",
                    duration=347,
                    genres=["Ambient", " Instrumental ", "Ambient", ""],
                ),
            )
            return track_id, await library.list_tracks(session, ALICE)

    track_id, tracks = asyncio.run(scenario())
    assert [t.id for t in tracks] == [track_id]
    assert tracks[0].genres == ["Ambient", "Instrumental"]
    assert tracks[0].is_favorited is False


def test_bulk_import_reports_bad_entries():
    async def scenario():
        async with memory_session() as session:
            result = await library.bulk_import(
                session,
                [
                    {"title": "One", "artist": "A", "url": "https://cdn.example.com/1.mp3"},
                    {"title": "Broken", "artist": "B"},
                    {"title": "Two", "artist": "C", "url": "https://cdn.example.com/2.mp3", "genres": ["Pop"]},
                ],
            )
            durations = (await session.execute(select(models.Track.duration))).scalars().all()
            return result, durations

    result, durations = asyncio.run(scenario())
    assert result.success_count == 2
    assert result.error_count == 1
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Broken:")
    assert durations == [0, 0]


def test_bulk_import_rejects_empty_list():
    async def scenario():
        async with memory_session() as session:
            await library.bulk_import(session, [])

    with pytest.raises(InvalidRequest):
        asyncio.run(scenario())


def test_delete_track_removes_dependent_rows():
    async def scenario():
        async with memory_session() as session:
            doomed = await add_track(session, "Doomed", genres=["Noise"])
            await add_track(session, "Survivor", genres=["Noise"])
            await add_favorite(session, "alice", doomed)
            await add_plays(session, doomed, 2)
            await library.delete_track(session, doomed.id)
            counts = {}
            for model in (models.Track, models.TrackGenre, models.UserFavorite, models.ListeningHistory):
                counts[model.__tablename__] = await session.scalar(select(func.count()).select_from(model))
            return counts

    assert asyncio.run(scenario()) == {
        "tracks": 1,
        "track_genres": 1,
        "user_favorites": 0,
        "listening_history": 0,
    }


def test_delete_unknown_track():
    async def scenario():
        async with memory_session() as session:
            await library.delete_track(session, 12)

    with pytest.raises(TrackNotFound):
        asyncio.run(scenario())


def test_search_matches_text_genre_and_artist():
    async def scenario():
        async with memory_session() as session:
            await add_track(session, "Midnight City", artist="M83", album="Hurry Up", genres=["Synthpop"])
            await add_track(session, "Blue Monday", artist="New Order", genres=["Synthpop", "New Wave"])
            await add_track(session, "So What", artist="Miles Davis", album="Kind of Blue", genres=["Jazz"])
            by_text = await library.search_tracks(session, ALICE, q="blue")
            by_genre = await library.search_tracks(session, ALICE, genre="synth")
            by_artist = await library.search_tracks(session, ALICE, artist="order", genre="wave")
            return by_text, by_genre, by_artist

    by_text, by_genre, by_artist = asyncio.run(scenario())
    assert [t.title for t in by_text] == ["Blue Monday", "So What"]
    assert [t.title for t in by_genre] == ["Blue Monday", "Midnight City"]
    assert [t.title for t in by_artist] == ["Blue Monday"]
    assert by_artist[0].genres == ["Synthpop", "New Wave"]


def test_list_genres_counts_tracks():
    async def scenario():
        async with memory_session() as session:
            await add_track(session, "A", genres=["Rock", "Indie"])
            await add_track(session, "B", genres=["Rock"])
            await add_track(session, "C")
            return await library.list_genres(session)

    genres = asyncio.run(scenario())
    assert [(g.genre, g.track_count) for g in genres] == [("Rock", 2), ("Indie", 1)]


def test_recent_tracks_follow_last_play():
    async def scenario():
        async with memory_session() as session:
            first = await add_track(session, "First")
            second = await add_track(session, "Second", genres=["Dub"])
            for track_id in (first.id, second.id, first.id):
                await log_track_interaction(
                    session, ALICE, TrackInteractionRequest(track_id=track_id, interaction_type="play", play_duration=40)
                )
            await add_plays(session, second, 3, user_id="someone-else")
            await toggle_favorite(session, ALICE, second.id)
            return await library.recent_tracks(session, ALICE, limit=10)

    recent = asyncio.run(scenario())
    assert [t.title for t in recent] == ["First", "Second"]
    assert [t.play_count for t in recent] == [2, 1]
    assert recent[1].genres == ["Dub"]
    assert recent[1].is_favorited is True
    assert recent[0].last_played_at is not None


def test_user_stats_summarise_listening():
    async def scenario():
        async with memory_session() as session:
            rock = await add_track(session, "Rock", genres=["Rock"])
            jazz = await add_track(session, "Jazz", genres=["Jazz", "Rock"])
            for track_id, seconds in ((rock.id, 100), (rock.id, 50), (jazz.id, 20)):
                await log_track_interaction(
                    session, ALICE, TrackInteractionRequest(track_id=track_id, interaction_type="play", play_duration=seconds)
                )
            await add_favorite(session, "alice", jazz)
            await add_plays(session, jazz, 4, user_id="bob")
            return await library.user_stats(session, ALICE)

    stats = asyncio.run(scenario())
    assert stats.total_listening_time == 170
    assert stats.total_plays == 3
    assert stats.favorite_count == 1
    assert [(g.genre, g.count) for g in stats.top_genres] == [("Rock", 3), ("Jazz", 1)]
