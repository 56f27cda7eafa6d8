"""
Progress events emitted by a migration run.

Each event serializes to the wire shape consumed by front ends:

    {"type": "info" | "warning" | "success" | "error" | "complete",
     "message": str,
     "details": str}          # optional

Events concerning one track also carry its 1-based position in the
playlist and the status it ended in, so a local consumer (the CLI
progress bar) can advance without parsing messages. These fields are not
part of the wire shape.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from playlist_migrator.core.models import PlaylistStatus, TrackCounts, TrackStatus


class EventType(str, Enum):
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    ERROR = "error"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ProgressEvent:
    """
    One progress notification.

    Attributes:
        type: EventType of the notification.
        message: Human-readable text.
        details: Optional extra text (error detail, score, counts).
        position: 1-based track position for per-track events.
        total: Number of tracks in the playlist, once known.
        track_status: Status the track ended in; None for tracks without
                      an id, which are not counted in any bucket.
    """
    type: EventType
    message: str
    details: str | None = None
    position: int | None = None
    total: int | None = None
    track_status: TrackStatus | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire shape."""
        data: dict[str, Any] = {"type": self.type.value, "message": self.message}
        if self.details is not None:
            data["details"] = self.details
        return data


# Anything that accepts events: a ProgressChannel, list.append, a callback
ProgressSink = Callable[[ProgressEvent], None]


@dataclass(frozen=True)
class MigrationSummary:
    """
    Final outcome of a migrate() call.

    Attributes:
        source_playlist_id: Spotify playlist id.
        target_playlist_id: YouTube playlist id, None if never created.
        status: Final PlaylistStatus.
        migrated: Tracks migrated (including ones resolved by earlier runs).
        skipped: Tracks skipped (no match, conflict, or resolved earlier).
        failed: Tracks that failed in this run.
        unidentified: Tracks without a source id, never stored.
        already_completed: True if the playlist was completed before this call.
    """
    source_playlist_id: str
    target_playlist_id: str | None
    status: PlaylistStatus
    migrated: int = 0
    skipped: int = 0
    failed: int = 0
    unidentified: int = 0
    already_completed: bool = False

    @classmethod
    def from_counts(
        cls,
        source_playlist_id: str,
        target_playlist_id: str | None,
        status: PlaylistStatus,
        counts: TrackCounts,
        already_completed: bool = False
    ) -> "MigrationSummary":
        return cls(
            source_playlist_id=source_playlist_id,
            target_playlist_id=target_playlist_id,
            status=status,
            migrated=counts.migrated,
            skipped=counts.skipped,
            failed=counts.failed,
            already_completed=already_completed,
        )

    def describe(self) -> str:
        """Counts as a short string, e.g. 'migrated=10, skipped=2, failed=1'."""
        return f"migrated={self.migrated}, skipped={self.skipped}, failed={self.failed}"
