"""
Persisted record types for playlist-migrator.

These dataclasses mirror the rows of the SQLite tables one to one. They
are shared by the database layer, the Token Provider and the migration
orchestrator, so they live in core rather than in any feature package.

Design Decisions:
    - Records are frozen; a state transition produces a new record via
      dataclasses.replace() and is written back with an upsert
    - Timestamps are integer epoch milliseconds
    - Status values are str-based Enums so they can be written to SQLite
      and compared against plain strings without conversion
"""

from dataclasses import dataclass
from enum import Enum


class Service(str, Enum):
    """Role of a catalog in a migration."""
    SOURCE = "source"
    TARGET = "target"


class AuthType(str, Enum):
    """
    How a service's credentials are stored.

    Values:
        OAUTH: Access/refresh token pair with expiry tracking
        SESSION: Captured authenticated header bundle, no expiry tracking
    """
    OAUTH = "oauth"
    SESSION = "session"


class PlaylistStatus(str, Enum):
    """
    Lifecycle of a playlist migration.

    State Transitions:
        (absent) -> IN_PROGRESS -> COMPLETED
        (absent) -> IN_PROGRESS -> FAILED
        FAILED -> IN_PROGRESS (resume)

    IN_PROGRESS is the only non-terminal value. COMPLETED is never left
    except through an explicit reset.
    """
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class TrackStatus(str, Enum):
    """
    Lifecycle of a single track within a playlist migration.

    State Transitions:
        PENDING -> MIGRATED (match found and inserted)
        PENDING -> SKIPPED (no candidate above threshold)
        PENDING -> FAILED (remote call failed)
        FAILED -> retried on the next run

    MIGRATED and SKIPPED are resolved: later runs never touch them.
    """
    PENDING = "pending"
    MIGRATED = "migrated"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def is_resolved(self) -> bool:
        return self in (TrackStatus.MIGRATED, TrackStatus.SKIPPED)


@dataclass(frozen=True)
class PlaylistRecord:
    """
    Migration progress of one source playlist.

    Attributes:
        source_playlist_id: Spotify playlist id (identity).
        name: Playlist name captured on the first run.
        status: Current PlaylistStatus.
        target_playlist_id: YouTube playlist id, None until created.
        last_updated: Epoch milliseconds of the last write.
    """
    source_playlist_id: str
    name: str
    status: PlaylistStatus
    target_playlist_id: str | None = None
    last_updated: int = 0


@dataclass(frozen=True)
class TrackRecord:
    """
    Migration progress of one track within one source playlist.

    Identity is the pair (source_playlist_id, source_track_id) so the same
    track can be migrated independently in several playlists.

    Attributes:
        source_playlist_id: Spotify playlist id the track belongs to.
        source_track_id: Spotify track id.
        status: Current TrackStatus.
        target_track_id: YouTube video id once migrated, else None.
        last_updated: Epoch milliseconds of the last write.
    """
    source_playlist_id: str
    source_track_id: str
    status: TrackStatus
    target_track_id: str | None = None
    last_updated: int = 0


@dataclass(frozen=True)
class TokenRecord:
    """
    Stored credentials for one service.

    Attributes:
        service: Service role (identity).
        access_token: Bearer token for oauth, JSON header object for session.
        auth_type: AuthType of the stored credential.
        refresh_token: OAuth refresh token, None for session credentials.
        expires_at: Expiry in epoch milliseconds, None if unknown/untracked.
        raw_value: Raw user input kept for diagnostics.
    """
    service: Service
    access_token: str
    auth_type: AuthType = AuthType.OAUTH
    refresh_token: str | None = None
    expires_at: int | None = None
    raw_value: str | None = None


@dataclass(frozen=True)
class TrackCounts:
    """Number of tracks per terminal status for one playlist."""
    migrated: int = 0
    skipped: int = 0
    failed: int = 0
    pending: int = 0

    @property
    def total(self) -> int:
        return self.migrated + self.skipped + self.failed + self.pending
