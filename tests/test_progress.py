"""Tests for the console progress bar"""

from playlist_migrator.core.models import TrackStatus
from playlist_migrator.core.progress import MigrationProgressBar
from playlist_migrator.migration.events import EventType, ProgressEvent


class TestMigrationProgressBar:
    """Tests for MigrationProgressBar.handle()"""

    def test_counts_track_outcomes(self):
        """Should count outcomes and advance to the last position"""
        bar = MigrationProgressBar()
        events = [
            ProgressEvent(EventType.INFO, "Found 3 tracks", total=3),
            ProgressEvent(EventType.SUCCESS, "Migrated", position=1, total=3,
                          track_status=TrackStatus.MIGRATED),
            ProgressEvent(EventType.WARNING, "No match", "best score 0.20", position=2, total=3,
                          track_status=TrackStatus.SKIPPED),
            ProgressEvent(EventType.ERROR, "Failed [timeout]", position=3, total=3,
                          track_status=TrackStatus.FAILED),
        ]

        with bar:
            for event in events:
                bar.handle(event)

        assert (bar.migrated, bar.skipped, bar.failed) == (1, 1, 1)
        assert bar.progress.tasks[0].completed == 3
        assert bar.progress.tasks[0].total == 3

    def test_events_without_total(self):
        """Should not create a task before the track count is known"""
        bar = MigrationProgressBar()

        with bar:
            bar.handle(ProgressEvent(EventType.INFO, "Starting migration"))

        assert bar.task_id is None
        assert bar.progress.tasks == []

    def test_untracked_warning_not_counted(self):
        bar = MigrationProgressBar()

        with bar:
            bar.handle(ProgressEvent(EventType.WARNING, "No id", position=1, total=1))

        assert (bar.migrated, bar.skipped, bar.failed) == (0, 0, 0)
