"""Test configuration and fixtures"""

import pytest
from pathlib import Path

from playlist_migrator.auth.provider import TokenProvider
from playlist_migrator.core.database import Database
from playlist_migrator.core.models import AuthType, Service, TokenRecord
from playlist_migrator.migration.orchestrator import Migrator
from playlist_migrator.spotify.models import SourcePlaylist, SourceTrack
from playlist_migrator.youtube.models import Candidate


PLAYLIST_ID = "37i9dQZF1DXcBWIGoYBM5M"


def make_track(track_id, name, duration_ms=200000, artist="Test Artist", album="Test Album"):
    """Build a SourceTrack with sensible defaults"""
    return SourceTrack(
        id=track_id,
        name=name,
        artists=(artist,),
        album=album,
        duration_ms=duration_ms,
        url=f"https://open.spotify.com/track/{track_id}" if track_id else "",
    )


def make_candidate(video_id, title, duration_ms=200000, channel="Test Artist - Topic"):
    """Build a Candidate with sensible defaults"""
    return Candidate(
        video_id=video_id,
        title=title,
        channel_title=channel,
        duration_ms=duration_ms,
    )


class FakeSpotify:
    """In-memory source catalog recording every call"""

    def __init__(self, playlist, tracks):
        self.playlist = playlist
        self.playlists = [playlist]
        self.tracks = list(tracks)
        self.calls = []
        self.tracks_error = None

    def fetch_playlist(self, playlist_id):
        self.calls.append(("fetch_playlist", playlist_id))
        return self.playlist

    def fetch_tracks(self, playlist_id):
        self.calls.append(("fetch_tracks", playlist_id))
        if self.tracks_error is not None:
            raise self.tracks_error
        return list(self.tracks)

    def list_playlists(self):
        self.calls.append(("list_playlists",))
        return list(self.playlists)


class FakeYouTube:
    """In-memory target catalog recording every call"""

    def __init__(self):
        self.calls = []
        self.results = {}
        self.search_errors = {}
        self.created = []
        self.added = []
        self.create_error = None
        self.crash_on_add = None
        self.playlists = []

    def add_results(self, track, *candidates):
        """Register the candidates returned when searching for track"""
        self.results[track.search_query] = list(candidates)

    def create_playlist(self, name, description=""):
        self.calls.append(("create_playlist", name))
        if self.create_error is not None:
            raise self.create_error
        playlist_id = f"yt-playlist-{len(self.created) + 1}"
        self.created.append((playlist_id, name, description))
        return playlist_id

    def list_playlists(self):
        self.calls.append(("list_playlists",))
        return [{"id": playlist_id, "name": name} for playlist_id, name in self.playlists]

    def search_candidates(self, query, limit=5):
        self.calls.append(("search", query))
        if query in self.search_errors:
            raise self.search_errors[query]
        return [c.video_id for c in self.results.get(query, [])][:limit]

    def fetch_candidate_details(self, video_ids):
        self.calls.append(("details", tuple(video_ids)))
        by_id = {c.video_id: c for found in self.results.values() for c in found}
        return [by_id[v] for v in video_ids if v in by_id]

    def add_track(self, playlist_id, video_id):
        self.calls.append(("add_track", playlist_id, video_id))
        if video_id == self.crash_on_add:
            raise RuntimeError("process killed")
        self.added.append((playlist_id, video_id))

    def searched_queries(self):
        return [call[1] for call in self.calls if call[0] == "search"]


@pytest.fixture
def database(tmp_path):
    """Fresh SQLite database in a temporary directory"""
    db = Database(tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def authenticated_database(database):
    """Database with credentials stored for both services"""
    database.save_token(TokenRecord(
        service=Service.SOURCE,
        access_token="spotify-access",
        refresh_token="spotify-refresh",
    ))
    database.save_token(TokenRecord(
        service=Service.TARGET,
        access_token='{"cookie": "SID=abc"}',
        auth_type=AuthType.SESSION,
    ))
    return database


@pytest.fixture
def token_provider(authenticated_database):
    return TokenProvider(authenticated_database)


@pytest.fixture
def source_playlist():
    return SourcePlaylist(
        id=PLAYLIST_ID,
        name="Road Trip",
        description="Songs for the road",
        track_count=3,
    )


@pytest.fixture
def fake_spotify(source_playlist):
    tracks = [
        make_track("t1", "First Song"),
        make_track("t2", "Second Song"),
        make_track("t3", "Third Song"),
    ]
    return FakeSpotify(source_playlist, tracks)


@pytest.fixture
def fake_youtube():
    return FakeYouTube()


@pytest.fixture
def migrator(authenticated_database, token_provider, fake_spotify, fake_youtube):
    return Migrator(authenticated_database, token_provider, fake_spotify, fake_youtube)


@pytest.fixture
def config_file(tmp_path):
    """config.yaml pointing database and logs into the temporary directory"""
    path = tmp_path / "config.yaml"
    path.write_text(
        "database:\n"
        f"  path: \"{(tmp_path / 'data' / 'migrator.db').as_posix()}\"\n"
        "logging:\n"
        f"  directory: \"{(tmp_path / 'logs').as_posix()}\"\n",
        encoding="utf-8",
    )
    return Path(path)
