"""Tests for the SQLite state, config and token stores"""

import math

import pytest

from playlist_migrator.core.database import Database
from playlist_migrator.core.exceptions import (
    DatabaseError,
    TrackConflictError,
    ValidationError,
)
from playlist_migrator.core.models import (
    AuthType,
    PlaylistRecord,
    PlaylistStatus,
    Service,
    TokenRecord,
    TrackRecord,
    TrackStatus,
)


def _playlist(playlist_id="pl1", target=None, status=PlaylistStatus.IN_PROGRESS):
    return PlaylistRecord(playlist_id, f"Playlist {playlist_id}", status, target)


class TestDatabaseSetup:
    """Tests for database creation"""

    def test_missing_parent_directory(self, tmp_path):
        """Should refuse to create a database in a missing directory"""
        with pytest.raises(DatabaseError):
            Database(tmp_path / "missing" / "test.db")

    def test_threshold_seeded(self, database):
        """Should seed the match threshold with 0.5"""
        assert database.get_match_threshold() == 0.5

    def test_reopen_keeps_threshold(self, tmp_path):
        """Should not overwrite a stored threshold when reopened"""
        db = Database(tmp_path / "test.db")
        db.set_match_threshold(0.7)
        db.close()

        reopened = Database(tmp_path / "test.db")
        assert reopened.get_match_threshold() == 0.7
        reopened.close()


class TestPlaylistRecords:
    """Tests for playlist state"""

    def test_upsert_and_get(self, database):
        """Should store a playlist and stamp last_updated"""
        stored = database.upsert_playlist(_playlist())

        assert stored.last_updated > 0
        assert database.get_playlist("pl1") == stored

    def test_upsert_updates_existing(self, database):
        """Should update status and target id of an existing playlist"""
        database.upsert_playlist(_playlist())
        database.upsert_playlist(_playlist(target="yt1", status=PlaylistStatus.COMPLETED))

        record = database.get_playlist("pl1")
        assert record.status == PlaylistStatus.COMPLETED
        assert record.target_playlist_id == "yt1"

    def test_unknown_playlist(self, database):
        """Should return None for an unknown playlist"""
        assert database.get_playlist("nope") is None

    def test_target_playlist_unique(self, database):
        """Should reject two playlists sharing a target playlist id"""
        database.upsert_playlist(_playlist("pl1", target="yt1"))

        with pytest.raises(DatabaseError):
            database.upsert_playlist(_playlist("pl2", target="yt1"))

    def test_get_all_playlists(self, database):
        """Should return every playlist ordered by name"""
        database.upsert_playlist(_playlist("b"))
        database.upsert_playlist(_playlist("a"))

        names = [p.name for p in database.get_all_playlists()]
        assert names == ["Playlist a", "Playlist b"]

    def test_delete_playlist_and_tracks(self, database):
        """Should delete the playlist together with its tracks"""
        database.upsert_playlist(_playlist())
        database.upsert_track(TrackRecord("pl1", "t1", TrackStatus.MIGRATED, "v1"))

        assert database.delete_playlist_and_tracks("pl1") is True
        assert database.get_playlist("pl1") is None
        assert database.get_playlist_tracks("pl1") == []

    def test_delete_unknown_playlist(self, database):
        """Should report that nothing was deleted"""
        assert database.delete_playlist_and_tracks("nope") is False


class TestTrackRecords:
    """Tests for track state"""

    def test_track_requires_playlist(self, database):
        """Should reject a track of an unknown playlist"""
        with pytest.raises(DatabaseError):
            database.upsert_track(TrackRecord("nope", "t1", TrackStatus.PENDING))

    def test_pending_to_migrated(self, database):
        """Should overwrite a pending track with its migrated state"""
        database.upsert_playlist(_playlist())
        database.upsert_track(TrackRecord("pl1", "t1", TrackStatus.PENDING))
        database.upsert_track(TrackRecord("pl1", "t1", TrackStatus.MIGRATED, "v1"))

        record = database.get_track("pl1", "t1")
        assert record.status == TrackStatus.MIGRATED
        assert record.target_track_id == "v1"
        assert len(database.get_playlist_tracks("pl1")) == 1

    def test_duplicate_target_in_playlist(self, database):
        """Should raise TrackConflictError when a target id is reused in a playlist"""
        database.upsert_playlist(_playlist())
        database.upsert_track(TrackRecord("pl1", "t1", TrackStatus.MIGRATED, "v1"))

        with pytest.raises(TrackConflictError) as exc_info:
            database.upsert_track(TrackRecord("pl1", "t2", TrackStatus.MIGRATED, "v1"))

        assert exc_info.value.target_track_id == "v1"
        assert database.get_track("pl1", "t2") is None

    def test_same_target_in_different_playlists(self, database):
        """Should allow the same target id in two playlists"""
        database.upsert_playlist(_playlist("pl1"))
        database.upsert_playlist(_playlist("pl2"))
        database.upsert_track(TrackRecord("pl1", "t1", TrackStatus.MIGRATED, "v1"))
        database.upsert_track(TrackRecord("pl2", "t1", TrackStatus.MIGRATED, "v1"))

        assert database.get_track("pl2", "t1").target_track_id == "v1"

    def test_skipped_tracks_without_target(self, database):
        """Should allow several tracks without a target id"""
        database.upsert_playlist(_playlist())
        database.upsert_track(TrackRecord("pl1", "t1", TrackStatus.SKIPPED))
        database.upsert_track(TrackRecord("pl1", "t2", TrackStatus.SKIPPED))

        assert len(database.get_playlist_tracks("pl1")) == 2

    def test_find_track_by_target(self, database):
        """Should find the track owning a target id"""
        database.upsert_playlist(_playlist())
        database.upsert_track(TrackRecord("pl1", "t1", TrackStatus.MIGRATED, "v1"))

        assert database.find_track_by_target("pl1", "v1").source_track_id == "t1"
        assert database.find_track_by_target("pl1", "v2") is None

    def test_count_tracks(self, database):
        """Should count tracks per status"""
        database.upsert_playlist(_playlist())
        database.upsert_track(TrackRecord("pl1", "t1", TrackStatus.MIGRATED, "v1"))
        database.upsert_track(TrackRecord("pl1", "t2", TrackStatus.MIGRATED, "v2"))
        database.upsert_track(TrackRecord("pl1", "t3", TrackStatus.SKIPPED))
        database.upsert_track(TrackRecord("pl1", "t4", TrackStatus.FAILED))

        counts = database.count_tracks("pl1")
        assert counts.migrated == 2
        assert counts.skipped == 1
        assert counts.failed == 1
        assert counts.pending == 0
        assert counts.total == 4


class TestMatchThreshold:
    """Tests for the match threshold setting"""

    @pytest.mark.parametrize("value", [0, 0.0, 0.35, 1, 1.0])
    def test_accepts_closed_interval(self, database, value):
        """Should accept values in [0, 1]"""
        assert database.set_match_threshold(value) == float(value)
        assert database.get_match_threshold() == float(value)

    @pytest.mark.parametrize("value", [-0.1, 1.1, "0.7", None, True, math.nan])
    def test_rejects_invalid(self, database, value):
        """Should reject invalid values without writing"""
        with pytest.raises(ValidationError):
            database.set_match_threshold(value)

        assert database.get_match_threshold() == 0.5


class TestTokens:
    """Tests for the token store"""

    def test_save_and_get(self, database):
        """Should store every token field"""
        record = TokenRecord(
            service=Service.SOURCE,
            access_token="access",
            refresh_token="refresh",
            expires_at=123,
        )
        database.save_token(record)

        assert database.get_token(Service.SOURCE) == record
        assert database.get_token(Service.TARGET) is None

    def test_save_replaces(self, database):
        """Should replace the full row on save"""
        database.save_token(TokenRecord(Service.TARGET, "access", refresh_token="refresh"))
        database.save_token(TokenRecord(
            Service.TARGET, '{"cookie": "a"}', auth_type=AuthType.SESSION
        ))

        record = database.get_token(Service.TARGET)
        assert record.auth_type == AuthType.SESSION
        assert record.refresh_token is None

    def test_update_keeps_refresh_token(self, database):
        """Should keep the refresh token when none was rotated"""
        database.save_token(TokenRecord(Service.SOURCE, "old", refresh_token="refresh"))
        database.update_access_token(Service.SOURCE, "new", 999)

        record = database.get_token(Service.SOURCE)
        assert record.access_token == "new"
        assert record.expires_at == 999
        assert record.refresh_token == "refresh"

    def test_update_rotates_refresh_token(self, database):
        """Should store a rotated refresh token"""
        database.save_token(TokenRecord(Service.SOURCE, "old", refresh_token="refresh"))
        database.update_access_token(Service.SOURCE, "new", 999, refresh_token="rotated")

        assert database.get_token(Service.SOURCE).refresh_token == "rotated"

    def test_delete_token(self, database):
        """Should delete a stored token once"""
        database.save_token(TokenRecord(Service.SOURCE, "access"))

        assert database.delete_token(Service.SOURCE) is True
        assert database.delete_token(Service.SOURCE) is False
        assert database.get_token(Service.SOURCE) is None
