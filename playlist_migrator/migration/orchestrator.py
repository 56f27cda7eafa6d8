"""
Migration orchestrator for playlist-migrator.

Migrates one Spotify playlist to YouTube as a resumable state machine:

    NOT_STARTED -> IN_PROGRESS -> COMPLETED
                              \\-> FAILED -> IN_PROGRESS (next run)

Run Steps:
    0. A COMPLETED playlist is reported from the store and left alone:
       no catalog calls, no track record changes.
    1. Preflight: credentials for both services, match threshold.
    2. Create the playlist record and the target playlist, or resume the
       existing record (creating the target playlist only if an earlier
       run never got that far).
    3. Fetch every source track.
    4. Per track, in playlist order:
         no id                 -> warning, not counted
         migrated/skipped      -> counted, no remote calls
         otherwise             -> pending, search, score, insert or skip
       Catalog errors fail only the track, except QuotaExceededError,
       which fails the playlist and aborts the run.
    5. Mark the playlist COMPLETED and emit the final counts.

Persistence Ordering:
    Every track transition is written to the store before its progress
    event is emitted, so a crash between the two leaves resumable state.

Progress Sink:
    A sink that raises is logged once and then ignored for the rest of the
    run. A closed channel (ChannelClosedError) is treated the same way.
"""

from dataclasses import dataclass, replace

from playlist_migrator.auth.provider import TokenProvider
from playlist_migrator.core.database import Database
from playlist_migrator.core.exceptions import (
    CatalogError,
    ChannelClosedError,
    MigratorError,
    QuotaExceededError,
    TrackConflictError,
)
from playlist_migrator.core.logger import get_logger, log_track_failure
from playlist_migrator.core.models import (
    PlaylistRecord,
    PlaylistStatus,
    Service,
    TrackRecord,
    TrackStatus,
)
from playlist_migrator.migration.events import (
    EventType,
    MigrationSummary,
    ProgressEvent,
    ProgressSink,
)
from playlist_migrator.spotify.client import SpotifyCatalog
from playlist_migrator.spotify.models import SourceTrack
from playlist_migrator.utils import format_duration
from playlist_migrator.youtube.client import YouTubeCatalog
from playlist_migrator.youtube.scorer import select_best

logger = get_logger(__name__)


DEFAULT_SEARCH_LIMIT = 5


@dataclass
class _RunState:
    """Mutable bookkeeping of a single migrate() call."""
    playlist_id: str
    sink: ProgressSink
    record: PlaylistRecord | None = None
    total: int | None = None
    migrated: int = 0
    skipped: int = 0
    failed: int = 0
    unidentified: int = 0
    sink_broken: bool = False

    def bump(self, status: TrackStatus) -> None:
        if status == TrackStatus.MIGRATED:
            self.migrated += 1
        elif status == TrackStatus.SKIPPED:
            self.skipped += 1
        elif status == TrackStatus.FAILED:
            self.failed += 1

    def summary(self, status: PlaylistStatus) -> MigrationSummary:
        return MigrationSummary(
            source_playlist_id=self.playlist_id,
            target_playlist_id=self.record.target_playlist_id if self.record else None,
            status=status,
            migrated=self.migrated,
            skipped=self.skipped,
            failed=self.failed,
            unidentified=self.unidentified,
        )


class Migrator:
    """
    Runs playlist migrations against the state store and both catalogs.

    A Migrator holds no per-run state and may be shared, but two runs for
    the same playlist id must not overlap; MigrationService enforces this.

    Attributes:
        _store: State, Config and Token store.
        _tokens: Token Provider used for the credential preflight.
        _source: Spotify catalog client.
        _target: YouTube catalog client.
        _search_limit: Maximum candidates requested per track.
    """

    def __init__(
        self,
        store: Database,
        tokens: TokenProvider,
        source: SpotifyCatalog,
        target: YouTubeCatalog,
        search_limit: int = DEFAULT_SEARCH_LIMIT
    ) -> None:
        self._store = store
        self._tokens = tokens
        self._source = source
        self._target = target
        self._search_limit = search_limit

    def migrate(self, playlist_id: str, sink: ProgressSink) -> MigrationSummary:
        """
        Migrate (or resume migrating) one playlist.

        Args:
            playlist_id: Spotify playlist id.
            sink: Receives ProgressEvents in order.

        Returns:
            MigrationSummary of the finished run.

        Raises:
            AuthenticationRequiredError: No credentials for a service (nothing changed).
            RefreshFailedError: Token refresh failed.
            QuotaExceededError: Target quota exhausted; the playlist is marked failed.
            CatalogError: Playlist-level catalog failure (metadata, track list,
                          target playlist creation); the playlist is marked
                          failed if its record exists.
        """
        run = _RunState(playlist_id=playlist_id, sink=sink)
        run.record = self._store.get_playlist(playlist_id)

        if run.record is not None and run.record.status == PlaylistStatus.COMPLETED:
            return self._report_completed(run)

        # Preflight: fail before any catalog call
        try:
            self._tokens.get_credentials(Service.SOURCE)
            self._tokens.get_credentials(Service.TARGET)
        except MigratorError as e:
            self._emit(run, EventType.ERROR, "Authentication required before migrating", str(e))
            raise
        threshold = self._store.get_match_threshold()

        try:
            self._prepare_playlist(run)
            tracks = self._source.fetch_tracks(playlist_id)
            run.total = len(tracks)
            self._emit(run, EventType.INFO, f"Found {len(tracks)} tracks", total=len(tracks))

            for position, track in enumerate(tracks, start=1):
                self._process_track(run, track, position, threshold)

        except MigratorError as e:
            self._fail_playlist(run, e)
            raise

        run.record = self._store.upsert_playlist(
            replace(run.record, status=PlaylistStatus.COMPLETED)
        )
        summary = run.summary(PlaylistStatus.COMPLETED)
        logger.info(f"Migration of '{run.record.name}' complete: {summary.describe()}")
        self._emit(run, EventType.COMPLETE, "Migration complete", summary.describe())
        return summary

    # =========================================================================
    # Playlist phases
    # =========================================================================

    def _report_completed(self, run: _RunState) -> MigrationSummary:
        record = run.record
        counts = self._store.count_tracks(run.playlist_id)
        summary = MigrationSummary.from_counts(
            run.playlist_id,
            record.target_playlist_id,
            PlaylistStatus.COMPLETED,
            counts,
            already_completed=True,
        )
        self._emit(run, EventType.INFO, f"Playlist '{record.name}' has already been migrated")
        self._emit(run, EventType.COMPLETE, "Migration complete", summary.describe())
        return summary

    def _prepare_playlist(self, run: _RunState) -> None:
        """Create or resume the playlist record and make sure the target playlist exists."""
        if run.record is None:
            playlist = self._source.fetch_playlist(run.playlist_id)
            run.record = self._store.upsert_playlist(PlaylistRecord(
                source_playlist_id=run.playlist_id,
                name=playlist.name,
                status=PlaylistStatus.IN_PROGRESS,
            ))
            self._emit(run, EventType.INFO, f"Starting migration of '{playlist.name}'")
            self._create_target_playlist(run, playlist.description)
            return

        run.record = self._store.upsert_playlist(
            replace(run.record, status=PlaylistStatus.IN_PROGRESS)
        )
        self._emit(run, EventType.INFO, f"Resuming migration of '{run.record.name}'")

        if not run.record.target_playlist_id:
            playlist = self._source.fetch_playlist(run.playlist_id)
            self._create_target_playlist(run, playlist.description)

    def _create_target_playlist(self, run: _RunState, description: str) -> None:
        target_id = self._target.create_playlist(run.record.name, description)
        run.record = self._store.upsert_playlist(
            replace(run.record, target_playlist_id=target_id)
        )
        self._emit(run, EventType.SUCCESS, f"Created YouTube playlist '{run.record.name}'", target_id)

    def _fail_playlist(self, run: _RunState, error: MigratorError) -> None:
        if run.record is not None:
            run.record = self._store.upsert_playlist(
                replace(run.record, status=PlaylistStatus.FAILED)
            )
        logger.error(f"Migration of playlist {run.playlist_id} failed: {error}")
        self._emit(run, EventType.ERROR, "Migration failed", str(error))

    # =========================================================================
    # Per-track processing
    # =========================================================================

    def _process_track(
        self,
        run: _RunState,
        track: SourceTrack,
        position: int,
        threshold: float
    ) -> None:
        if not track.id:
            run.unidentified += 1
            self._emit(
                run, EventType.WARNING,
                f"Skipping '{track.display_name}': track has no Spotify id",
                position=position,
            )
            return

        existing = self._store.get_track(run.playlist_id, track.id)
        if existing is not None and existing.status.is_resolved:
            run.bump(existing.status)
            self._emit(
                run, EventType.INFO,
                f"Already {existing.status.value}: {track.display_name}",
                position=position, track_status=existing.status,
            )
            return

        self._store.upsert_track(TrackRecord(run.playlist_id, track.id, TrackStatus.PENDING))

        try:
            self._match_and_insert(run, track, position, threshold)
        except QuotaExceededError:
            raise
        except CatalogError as e:
            self._store.upsert_track(TrackRecord(run.playlist_id, track.id, TrackStatus.FAILED))
            run.failed += 1
            log_track_failure(logger, track.name, track.artist, track.url, str(e))
            self._emit(
                run, EventType.ERROR,
                f"Failed to migrate '{track.display_name}'", str(e),
                position=position, track_status=TrackStatus.FAILED,
            )

    def _match_and_insert(
        self,
        run: _RunState,
        track: SourceTrack,
        position: int,
        threshold: float
    ) -> None:
        video_ids = self._target.search_candidates(track.search_query, self._search_limit)
        if not video_ids:
            self._resolve(
                run, track, position, TrackStatus.SKIPPED,
                EventType.WARNING, f"No YouTube results for '{track.display_name}'",
            )
            return

        candidates = self._target.fetch_candidate_details(video_ids)
        decision = select_best(track, candidates, threshold)

        if not decision.accepted:
            best = f"best score {decision.best.score:.2f}" if decision.best else "no playable candidates"
            self._resolve(
                run, track, position, TrackStatus.SKIPPED,
                EventType.WARNING, f"No match above threshold for '{track.display_name}'",
                f"{best}, threshold {threshold:.2f}",
            )
            return

        video_id = decision.match.video_id
        owner = self._store.find_track_by_target(run.playlist_id, video_id)
        if owner is not None:
            self._resolve(
                run, track, position, TrackStatus.SKIPPED,
                EventType.WARNING,
                f"'{track.display_name}' matched a video already used in this playlist",
                f"video {video_id} belongs to track {owner.source_track_id}",
            )
            return

        self._target.add_track(run.record.target_playlist_id, video_id)

        try:
            self._store.upsert_track(TrackRecord(
                run.playlist_id, track.id, TrackStatus.MIGRATED, target_track_id=video_id
            ))
        except TrackConflictError as e:
            self._resolve(
                run, track, position, TrackStatus.SKIPPED,
                EventType.WARNING,
                f"'{track.display_name}' matched a video already used in this playlist",
                str(e),
            )
            return

        match = decision.match
        run.migrated += 1
        logger.debug(f"Matched '{track.display_name}' to {match.url}")
        self._emit(
            run, EventType.SUCCESS,
            f"Migrated '{track.display_name}'",
            f"{match.title} [{format_duration(match.duration_ms)}] (score {decision.best.score:.2f})",
            position=position, track_status=TrackStatus.MIGRATED,
        )

    def _resolve(
        self,
        run: _RunState,
        track: SourceTrack,
        position: int,
        status: TrackStatus,
        event_type: EventType,
        message: str,
        details: str | None = None
    ) -> None:
        self._store.upsert_track(TrackRecord(run.playlist_id, track.id, status))
        run.bump(status)
        self._emit(run, event_type, message, details, position=position, track_status=status)

    # =========================================================================
    # Progress
    # =========================================================================

    def _emit(
        self,
        run: _RunState,
        event_type: EventType,
        message: str,
        details: str | None = None,
        position: int | None = None,
        track_status: TrackStatus | None = None,
        total: int | None = None
    ) -> None:
        if event_type in (EventType.WARNING, EventType.ERROR):
            logger.debug(f"[{event_type.value}] {message}" + (f" ({details})" if details else ""))

        if run.sink_broken:
            return

        event = ProgressEvent(
            type=event_type,
            message=message,
            details=details,
            position=position,
            total=total if total is not None else run.total,
            track_status=track_status,
        )
        try:
            run.sink(event)
        except ChannelClosedError:
            run.sink_broken = True
            logger.info("Progress consumer disconnected; migration continues in the background")
        except Exception as e:
            run.sink_broken = True
            logger.warning(f"Progress sink failed, further events are dropped: {e}")
