"""
Migration control surface for playlist-migrator.

MigrationService wires the store, the Token Provider, both catalogs and
the orchestrator together and exposes the operations a front end needs:

    start_migration(id)        -> ProgressChannel (runs in a worker thread)
    run_migration(id, sink)    -> MigrationSummary (blocking)
    reset_migration(id)        -> bool
    get_match_threshold()      -> float
    set_match_threshold(v)     -> float, ValidationError outside [0, 1]
    playlist_overview()        -> source playlists with migration status
    sync_playlists()           -> link playlists already present on YouTube

Concurrency:
    A playlist id is claimed while it is being migrated, reset or linked. A
    second operation on a claimed id raises MigrationInProgressError.
    Different ids run concurrently in the worker pool.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial

from playlist_migrator.auth.oauth import OAuthRefresher
from playlist_migrator.auth.provider import TokenProvider
from playlist_migrator.core.config import Config
from playlist_migrator.core.database import Database
from playlist_migrator.core.exceptions import MigrationInProgressError
from playlist_migrator.core.logger import get_logger
from playlist_migrator.core.models import PlaylistRecord, PlaylistStatus, Service
from playlist_migrator.migration.channel import ProgressChannel
from playlist_migrator.migration.events import MigrationSummary, ProgressSink
from playlist_migrator.migration.orchestrator import Migrator
from playlist_migrator.spotify.client import SpotifyCatalog
from playlist_migrator.youtube.client import YouTubeCatalog

logger = get_logger(__name__)


DEFAULT_MAX_WORKERS = 4

NOT_STARTED = "not_started"


@dataclass(frozen=True)
class PlaylistOverview:
    """
    A source playlist joined with its migration state.

    Attributes:
        id: Spotify playlist id.
        name: Playlist name.
        track_count: Number of tracks Spotify reports.
        is_public: Spotify public flag.
        status: Migration status value, or "not_started".
        last_updated: Epoch ms of the last migration write, None if never migrated.
        target_playlist_id: YouTube playlist id, if created.
    """
    id: str
    name: str
    track_count: int
    is_public: bool
    status: str
    last_updated: int | None = None
    target_playlist_id: str | None = None


class MigrationService:
    """
    Entry point used by the CLI (or any other front end).

    Attributes:
        store: The shared Database.
        tokens: TokenProvider for both services.
        source: Spotify catalog client.
        target: YouTube catalog client.
        migrator: The orchestrator.

    Example:
        service = MigrationService.from_config(load_config())
        channel = service.start_migration("37i9dQZF1DXcBWIGoYBM5M")
        for event in channel:
            print(event.message)
        service.close()
    """

    def __init__(
        self,
        store: Database,
        tokens: TokenProvider,
        source: SpotifyCatalog,
        target: YouTubeCatalog,
        search_limit: int = 5,
        max_workers: int = DEFAULT_MAX_WORKERS
    ) -> None:
        self.store = store
        self.tokens = tokens
        self.source = source
        self.target = target
        self.migrator = Migrator(store, tokens, source, target, search_limit=search_limit)

        self._running: set[str] = set()
        self._running_guard = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="migration"
        )

    @classmethod
    def from_config(cls, config: Config) -> "MigrationService":
        """Build the full object graph from the loaded configuration."""
        config.database_path.parent.mkdir(parents=True, exist_ok=True)
        store = Database(config.database_path)
        tokens = TokenProvider(store, OAuthRefresher.from_config(config))
        timeout = config.network.timeout
        source = SpotifyCatalog(partial(tokens.get_credentials, Service.SOURCE), timeout=timeout)
        target = YouTubeCatalog(partial(tokens.get_credentials, Service.TARGET), timeout=timeout)
        return cls(store, tokens, source, target, search_limit=config.network.search_limit)

    def close(self) -> None:
        """Wait for running migrations and close the database."""
        self._executor.shutdown(wait=True)
        self.store.close()

    # =========================================================================
    # Per-playlist claims
    # =========================================================================

    def _claim(self, playlist_id: str) -> None:
        with self._running_guard:
            if playlist_id in self._running:
                raise MigrationInProgressError(playlist_id)
            self._running.add(playlist_id)

    def _release(self, playlist_id: str) -> None:
        with self._running_guard:
            self._running.discard(playlist_id)

    def is_running(self, playlist_id: str) -> bool:
        with self._running_guard:
            return playlist_id in self._running

    # =========================================================================
    # Migrations
    # =========================================================================

    def start_migration(self, playlist_id: str) -> ProgressChannel:
        """
        Start a migration in a worker thread.

        Returns:
            ProgressChannel to iterate for events. After iteration,
            channel.summary or channel.error holds the outcome.

        Raises:
            MigrationInProgressError: If the playlist is already being migrated.
        """
        self._claim(playlist_id)
        channel = ProgressChannel()
        try:
            self._executor.submit(self._run_in_worker, playlist_id, channel)
        except RuntimeError:
            self._release(playlist_id)
            raise
        return channel

    def _run_in_worker(self, playlist_id: str, channel: ProgressChannel) -> None:
        try:
            summary = self.migrator.migrate(playlist_id, channel)
        except Exception as e:
            logger.debug(f"Worker for playlist {playlist_id} ended with {type(e).__name__}")
            channel.finish(error=e)
        else:
            channel.finish(summary=summary)
        finally:
            self._release(playlist_id)

    def run_migration(self, playlist_id: str, sink: ProgressSink) -> MigrationSummary:
        """
        Run a migration in the calling thread.

        Raises:
            MigrationInProgressError: If the playlist is already being migrated.
            MigratorError: Whatever the orchestrator raises.
        """
        self._claim(playlist_id)
        try:
            return self.migrator.migrate(playlist_id, sink)
        finally:
            self._release(playlist_id)

    def reset_migration(self, playlist_id: str) -> bool:
        """
        Delete all migration state of a playlist (tracks, then the playlist).

        The target playlist on YouTube is left untouched.

        Returns:
            True if a playlist record existed.

        Raises:
            MigrationInProgressError: If the playlist is currently being migrated.
        """
        self._claim(playlist_id)
        try:
            deleted = self.store.delete_playlist_and_tracks(playlist_id)
        finally:
            self._release(playlist_id)
        if deleted:
            logger.info(f"Reset migration state of playlist {playlist_id}")
        return deleted

    # =========================================================================
    # Configuration
    # =========================================================================

    def get_match_threshold(self) -> float:
        return self.store.get_match_threshold()

    def set_match_threshold(self, value: float) -> float:
        """
        Raises:
            ValidationError: If value is not a number in [0, 1]. Nothing is written.
        """
        return self.store.set_match_threshold(value)

    # =========================================================================
    # Overview
    # =========================================================================

    def playlist_overview(self) -> list[PlaylistOverview]:
        """
        List the user's Spotify playlists with their migration status.

        Raises:
            AuthenticationRequiredError: If no source credentials are stored.
            CatalogError: If Spotify cannot be queried.
        """
        records = {r.source_playlist_id: r for r in self.store.get_all_playlists()}
        overview = []
        for playlist in self.source.list_playlists():
            record = records.get(playlist.id)
            overview.append(PlaylistOverview(
                id=playlist.id,
                name=playlist.name,
                track_count=playlist.track_count,
                is_public=playlist.is_public,
                status=record.status.value if record else NOT_STARTED,
                last_updated=record.last_updated if record else None,
                target_playlist_id=record.target_playlist_id if record else None,
            ))
        return overview

    def sync_playlists(self) -> list[PlaylistRecord]:
        """
        Link Spotify playlists to YouTube playlists that already exist.

        A Spotify playlist is linked when the user owns a YouTube playlist
        with exactly the same name and nothing is stored for it yet. The
        link is recorded as a completed migration, so 'migrate' reports it
        without creating a second YouTube playlist. Track lists are not
        compared. When several YouTube playlists share a name, the last one
        listed wins.

        Returns:
            The newly linked playlist records.

        Raises:
            AuthenticationRequiredError: If credentials are missing for either service.
            CatalogError: If either catalog cannot be queried.
        """
        targets = {p["name"]: p["id"] for p in self.target.list_playlists()}
        records = {r.source_playlist_id: r for r in self.store.get_all_playlists()}
        linked_targets = {r.target_playlist_id for r in records.values() if r.target_playlist_id}

        linked: list[PlaylistRecord] = []
        for playlist in self.source.list_playlists():
            target_id = targets.get(playlist.name)
            if target_id is None or playlist.id in records:
                continue
            if target_id in linked_targets:
                logger.warning(
                    f"YouTube playlist {target_id} is already linked; not linking '{playlist.name}'"
                )
                continue

            try:
                self._claim(playlist.id)
            except MigrationInProgressError:
                logger.info(f"Playlist '{playlist.name}' is being migrated; not linking it")
                continue
            try:
                # A migration may have started and finished since the records were read
                if self.store.get_playlist(playlist.id) is not None:
                    continue
                record = self.store.upsert_playlist(PlaylistRecord(
                    source_playlist_id=playlist.id,
                    name=playlist.name,
                    status=PlaylistStatus.COMPLETED,
                    target_playlist_id=target_id,
                ))
            finally:
                self._release(playlist.id)

            linked_targets.add(target_id)
            linked.append(record)
            logger.info(f"Linked '{playlist.name}' to existing YouTube playlist {target_id}")

        return linked
