from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import func, select

from soundwave.core.security import UserContext
from soundwave.db import models
from soundwave.schemas.playlists import PlaylistCreate, UserPlaylistCreate
from soundwave.services import library, playlists
from soundwave.services.errors import InvalidRequest, PlaylistAccessDenied, TrackNotFound

from support import add_favorite, add_track, memory_session

ALICE = UserContext(user_id="alice")
BOB = UserContext(user_id="bob")


def test_admin_playlists_newest_first():
    async def scenario():
        async with memory_session() as session:
            await playlists.create_playlist(session, PlaylistCreate(name="Editors' Picks"))
            await playlists.create_playlist(session, PlaylistCreate(name="Fresh Finds", description="weekly"))
            return await playlists.list_playlists(session)

    listed = asyncio.run(scenario())
    assert [p.name for p in listed] == ["Fresh Finds", "Editors' Picks"]
    assert listed[0].description == "weekly"


def test_tracks_append_in_position_order():
    async def scenario():
        async with memory_session() as session:
            first = await add_track(session, "First", genres=["Dream Pop"])
            second = await add_track(session, "Second")
            await add_favorite(session, "alice", second)
            playlist_id = await playlists.create_user_playlist(session, ALICE, UserPlaylistCreate(name="Road Trip"))
            added = [
                await playlists.add_track_to_playlist(session, ALICE, playlist_id, track_id)
                for track_id in (second.id, first.id, second.id)
            ]
            return added, await playlists.playlist_tracks(session, ALICE, playlist_id)

    added, tracks = asyncio.run(scenario())
    assert added == [True, True, False]
    assert [(t.title, t.position) for t in tracks] == [("Second", 1), ("First", 2)]
    assert tracks[0].is_favorited is True
    assert tracks[1].genres == ["Dream Pop"]


def test_user_playlists_show_own_and_public():
    async def scenario():
        async with memory_session() as session:
            track = await add_track(session, "Song")
            mine = await playlists.create_user_playlist(session, ALICE, UserPlaylistCreate(name="Mine"))
            await playlists.create_user_playlist(session, BOB, UserPlaylistCreate(name="Bob private"))
            shared = await playlists.create_user_playlist(
                session, BOB, UserPlaylistCreate(name="Bob shared", is_public=True)
            )
            await playlists.add_track_to_playlist(session, BOB, shared, track.id)
            return mine, shared, await playlists.list_user_playlists(session, ALICE)

    mine, shared, listed = asyncio.run(scenario())
    assert [(p.id, p.track_count) for p in listed] == [(shared, 1), (mine, 0)]
    assert listed[0].user_id == "bob"
    assert listed[0].is_public is True


def test_playlist_access_rules():
    async def scenario():
        async with memory_session() as session:
            track = await add_track(session, "Song")
            private = await playlists.create_user_playlist(session, BOB, UserPlaylistCreate(name="Private"))
            public = await playlists.create_user_playlist(
                session, BOB, UserPlaylistCreate(name="Public", is_public=True)
            )
            await playlists.add_track_to_playlist(session, BOB, public, track.id)

            # anyone may read a public playlist, only the owner may change it
            readable = await playlists.playlist_tracks(session, ALICE, public)
            for attempt in (
                playlists.add_track_to_playlist(session, ALICE, public, track.id),
                playlists.playlist_tracks(session, ALICE, private),
                playlists.delete_user_playlist(session, ALICE, public),
                playlists.playlist_tracks(session, ALICE, 999),
            ):
                with pytest.raises(PlaylistAccessDenied):
                    await attempt
            return readable

    readable = asyncio.run(scenario())
    assert [t.title for t in readable] == ["Song"]


def test_add_track_validates_track():
    async def scenario():
        async with memory_session() as session:
            playlist_id = await playlists.create_user_playlist(session, ALICE, UserPlaylistCreate(name="Empty"))
            with pytest.raises(InvalidRequest):
                await playlists.add_track_to_playlist(session, ALICE, playlist_id, None)
            with pytest.raises(TrackNotFound):
                await playlists.add_track_to_playlist(session, ALICE, playlist_id, 42)
            return await session.scalar(select(func.count(models.PlaylistTrack.id)))

    assert asyncio.run(scenario()) == 0


def test_deleting_playlist_or_track_drops_membership():
    async def scenario():
        async with memory_session() as session:
            keep = await add_track(session, "Keep")
            gone = await add_track(session, "Gone")
            doomed = await playlists.create_user_playlist(session, ALICE, UserPlaylistCreate(name="Doomed"))
            survivor = await playlists.create_user_playlist(session, ALICE, UserPlaylistCreate(name="Survivor"))
            for track in (keep, gone):
                await playlists.add_track_to_playlist(session, ALICE, doomed, track.id)
                await playlists.add_track_to_playlist(session, ALICE, survivor, track.id)

            await playlists.delete_user_playlist(session, ALICE, doomed)
            await library.delete_track(session, gone.id)
            remaining = await playlists.list_user_playlists(session, ALICE)
            return remaining, await playlists.playlist_tracks(session, ALICE, survivor)

    remaining, tracks = asyncio.run(scenario())
    assert [(p.name, p.track_count) for p in remaining] == [("Survivor", 1)]
    assert [(t.title, t.position) for t in tracks] == [("Keep", 1)]
