"""Tests for the progress channel and the migration control surface"""

import threading
import time

import pytest

from playlist_migrator.core.exceptions import (
    AuthenticationRequiredError,
    ChannelClosedError,
    MigrationInProgressError,
    ValidationError,
)
from playlist_migrator.core.models import PlaylistStatus, Service
from playlist_migrator.migration.channel import ProgressChannel
from playlist_migrator.migration.events import EventType, MigrationSummary, ProgressEvent
from playlist_migrator.migration.service import NOT_STARTED, MigrationService
from playlist_migrator.spotify.models import SourcePlaylist

from tests.conftest import PLAYLIST_ID, make_candidate


def _event(message):
    return ProgressEvent(EventType.INFO, message)


@pytest.fixture
def service(authenticated_database, token_provider, fake_spotify, fake_youtube):
    for n, track in enumerate(fake_spotify.tracks, start=1):
        fake_youtube.add_results(track, make_candidate(f"v{n}", track.name))
    service = MigrationService(
        authenticated_database, token_provider, fake_spotify, fake_youtube, max_workers=2
    )
    yield service
    service.close()


class TestProgressEvent:
    """Tests for the event wire shape"""

    def test_to_dict_with_details(self):
        event = ProgressEvent(EventType.SUCCESS, "Migrated", "score 0.95", position=1, total=3)
        assert event.to_dict() == {"type": "success", "message": "Migrated", "details": "score 0.95"}

    def test_to_dict_without_details(self):
        assert _event("Hello").to_dict() == {"type": "info", "message": "Hello"}


class TestProgressChannel:
    """Tests for ProgressChannel"""

    def test_iterates_until_finish(self):
        """Should yield events in order and stop at finish()"""
        channel = ProgressChannel()
        summary = MigrationSummary(PLAYLIST_ID, "yt1", PlaylistStatus.COMPLETED)
        channel.put(_event("one"))
        channel(_event("two"))
        channel.finish(summary=summary)

        assert [e.message for e in channel] == ["one", "two"]
        assert channel.done
        assert channel.summary == summary
        assert channel.error is None

    def test_put_after_close(self):
        """Should reject writes once the consumer closed the channel"""
        channel = ProgressChannel()
        channel.put(_event("dropped"))
        channel.close()

        with pytest.raises(ChannelClosedError):
            channel.put(_event("late"))
        assert list(channel) == []
        assert channel.closed

    def test_finish_after_close(self):
        """Should record the outcome even when nobody is listening"""
        channel = ProgressChannel()
        channel.close()
        error = RuntimeError("boom")

        channel.finish(error=error)

        assert channel.error is error
        assert channel.wait(0)

    def test_wait_times_out(self):
        assert ProgressChannel().wait(0.01) is False

    def test_bounded(self):
        """Should block the producer while the channel is full"""
        channel = ProgressChannel(capacity=1)
        channel.put(_event("first"))
        producer = threading.Thread(target=channel.put, args=(_event("second"),))
        producer.start()

        time.sleep(0.3)
        assert producer.is_alive()

        events = iter(channel)
        assert next(events).message == "first"
        producer.join(timeout=2)
        assert not producer.is_alive()
        assert next(events).message == "second"
        channel.close()


class TestMigrations:
    """Tests for starting and running migrations"""

    def test_start_migration(self, service):
        """Should stream events from a worker and expose the summary"""
        channel = service.start_migration(PLAYLIST_ID)

        events = list(channel)

        assert events[-1].type == EventType.COMPLETE
        assert channel.error is None
        assert channel.summary.migrated == 3

    def test_start_migration_error(self, service, authenticated_database):
        """Should hand the worker's exception to the consumer"""
        authenticated_database.delete_token(Service.SOURCE)

        channel = service.start_migration(PLAYLIST_ID)
        events = list(channel)

        assert [e.type for e in events] == [EventType.ERROR]
        assert isinstance(channel.error, AuthenticationRequiredError)
        assert channel.summary is None

    def test_run_migration(self, service):
        events = []

        summary = service.run_migration(PLAYLIST_ID, events.append)

        assert summary.status == PlaylistStatus.COMPLETED
        assert events[-1].type == EventType.COMPLETE
        assert not service.is_running(PLAYLIST_ID)

    def test_concurrent_run_rejected(self, service, fake_spotify):
        """Should reject a second migration or a reset while one is running"""
        entered = threading.Event()
        release = threading.Event()
        fetch_tracks = fake_spotify.fetch_tracks

        def blocking_fetch(playlist_id):
            entered.set()
            release.wait(5)
            return fetch_tracks(playlist_id)

        fake_spotify.fetch_tracks = blocking_fetch

        channel = service.start_migration(PLAYLIST_ID)
        assert entered.wait(5)
        assert service.is_running(PLAYLIST_ID)

        with pytest.raises(MigrationInProgressError):
            service.start_migration(PLAYLIST_ID)
        with pytest.raises(MigrationInProgressError):
            service.run_migration(PLAYLIST_ID, lambda event: None)
        with pytest.raises(MigrationInProgressError):
            service.reset_migration(PLAYLIST_ID)

        release.set()
        list(channel)
        assert channel.summary.status == PlaylistStatus.COMPLETED

    def test_consumer_disconnect(self, service, authenticated_database):
        """Should finish and persist the run after the consumer closed the channel"""
        channel = service.start_migration(PLAYLIST_ID)
        channel.close()

        assert channel.wait(5)
        assert channel.summary.migrated == 3
        assert authenticated_database.get_playlist(PLAYLIST_ID).status == PlaylistStatus.COMPLETED


class TestReset:
    """Tests for reset_migration()"""

    def test_reset_then_rerun(self, service, authenticated_database, fake_youtube):
        """Should delete all state so the next run starts from scratch"""
        service.run_migration(PLAYLIST_ID, lambda event: None)

        assert service.reset_migration(PLAYLIST_ID) is True
        assert authenticated_database.get_playlist(PLAYLIST_ID) is None
        assert authenticated_database.get_playlist_tracks(PLAYLIST_ID) == []

        summary = service.run_migration(PLAYLIST_ID, lambda event: None)

        assert not summary.already_completed
        assert summary.target_playlist_id == "yt-playlist-2"
        assert len(fake_youtube.added) == 6

    def test_reset_unknown(self, service):
        assert service.reset_migration("unknown") is False


class TestThreshold:
    """Tests for threshold management"""

    def test_set_and_get(self, service):
        assert service.get_match_threshold() == 0.5
        assert service.set_match_threshold(0.7) == 0.7
        assert service.get_match_threshold() == 0.7

    @pytest.mark.parametrize("value", [-0.1, 1.5, "high"])
    def test_invalid_rejected(self, service, value):
        """Should reject invalid thresholds and keep the stored value"""
        with pytest.raises(ValidationError):
            service.set_match_threshold(value)

        assert service.get_match_threshold() == 0.5


class TestPlaylistOverview:
    """Tests for playlist_overview()"""

    def test_not_started(self, service):
        overview = service.playlist_overview()

        assert len(overview) == 1
        assert overview[0].name == "Road Trip"
        assert overview[0].status == NOT_STARTED
        assert overview[0].last_updated is None

    def test_after_migration(self, service):
        service.run_migration(PLAYLIST_ID, lambda event: None)

        entry = service.playlist_overview()[0]

        assert entry.status == "completed"
        assert entry.target_playlist_id == "yt-playlist-1"
        assert entry.last_updated > 0


class TestSyncPlaylists:
    """Tests for sync_playlists()"""

    def test_links_by_name(self, service, authenticated_database, fake_spotify, fake_youtube):
        """Should link same-named playlists as completed migrations"""
        fake_spotify.playlists.append(SourcePlaylist(id="workout", name="Workout"))
        fake_youtube.playlists = [("PLroad", "Road Trip"), ("PLchill", "Chill")]

        linked = service.sync_playlists()

        assert [(r.source_playlist_id, r.target_playlist_id) for r in linked] == [
            (PLAYLIST_ID, "PLroad"),
        ]
        record = authenticated_database.get_playlist(PLAYLIST_ID)
        assert record.status == PlaylistStatus.COMPLETED
        assert record.target_playlist_id == "PLroad"
        assert authenticated_database.get_playlist("workout") is None

    def test_linked_playlist_not_migrated_again(self, service, fake_youtube):
        """Should make 'migrate' report the link instead of creating a playlist"""
        fake_youtube.playlists = [("PLroad", "Road Trip")]
        service.sync_playlists()

        summary = service.run_migration(PLAYLIST_ID, lambda event: None)

        assert summary.already_completed
        assert summary.target_playlist_id == "PLroad"
        assert fake_youtube.created == []

    def test_existing_record_kept(self, service, authenticated_database, fake_youtube):
        """Should skip playlists that already have migration state"""
        service.run_migration(PLAYLIST_ID, lambda event: None)
        fake_youtube.playlists = [("PLroad", "Road Trip")]

        assert service.sync_playlists() == []
        assert authenticated_database.get_playlist(PLAYLIST_ID).target_playlist_id == "yt-playlist-1"

    def test_target_linked_once(self, service, authenticated_database, fake_spotify, fake_youtube):
        """Should not link one YouTube playlist to two Spotify playlists"""
        fake_spotify.playlists.append(SourcePlaylist(id="copy", name="Road Trip"))
        fake_youtube.playlists = [("PLroad", "Road Trip")]

        linked = service.sync_playlists()

        assert [r.source_playlist_id for r in linked] == [PLAYLIST_ID]
        assert authenticated_database.get_playlist("copy") is None

    def test_last_duplicate_name_wins(self, service, fake_youtube):
        fake_youtube.playlists = [("PLold", "Road Trip"), ("PLnew", "Road Trip")]

        linked = service.sync_playlists()

        assert linked[0].target_playlist_id == "PLnew"

    def test_running_playlist_skipped(self, service, authenticated_database, fake_youtube):
        """Should leave a playlist alone while it is being migrated"""
        fake_youtube.playlists = [("PLroad", "Road Trip")]
        service._claim(PLAYLIST_ID)

        try:
            assert service.sync_playlists() == []
        finally:
            service._release(PLAYLIST_ID)

        assert authenticated_database.get_playlist(PLAYLIST_ID) is None


class TestRunningPlaylists:
    """Tests for the per-playlist claims"""

    def test_claims_released(self, service):
        """Should forget a playlist once its run is over"""
        service.run_migration(PLAYLIST_ID, lambda event: None)
        service.reset_migration(PLAYLIST_ID)

        assert service._running == set()

    def test_claim_released_after_error(self, service, authenticated_database):
        authenticated_database.delete_token(Service.SOURCE)

        with pytest.raises(AuthenticationRequiredError):
            service.run_migration(PLAYLIST_ID, lambda event: None)

        assert not service.is_running(PLAYLIST_ID)
        assert service._running == set()
