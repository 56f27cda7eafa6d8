"""
Thread-safe SQLite database for playlist-migrator.

One database file backs three stores used by the migration engine:

    State Store:    migrated_playlists / migrated_tracks progress records
    Config Store:   config key/value pairs (match_threshold)
    Token Store:    tokens per service role

Schema:
    tokens:              service PK, access/refresh token, expiry, auth type
    config:              key PK, value (seeded with match_threshold=0.5)
    migrated_playlists:  source_playlist_id PK, target_playlist_id UNIQUE
    migrated_tracks:     (source_playlist_id, source_track_id) PK,
                         UNIQUE(source_playlist_id, target_track_id)

All writes are last-write-wins upserts. There is no compare-and-swap, so
callers must ensure a single writer per playlist id (see
MigrationService's per-playlist lock).

Usage:
    db = Database(config.database_path)

    record = db.get_playlist(playlist_id)
    db.upsert_track(TrackRecord(playlist_id, track_id, TrackStatus.PENDING))
    db.set_match_threshold(0.7)
"""

import sqlite3
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

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
    TrackCounts,
    TrackRecord,
    TrackStatus,
)


DATABASE_VERSION = 1
MATCH_THRESHOLD_KEY = "match_threshold"
DEFAULT_MATCH_THRESHOLD = 0.5


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS tokens (
    service TEXT PRIMARY KEY,
    access_token TEXT NOT NULL,
    refresh_token TEXT,
    expires_at INTEGER,
    auth_type TEXT NOT NULL DEFAULT 'oauth',
    raw_value TEXT
);

CREATE TABLE IF NOT EXISTS config (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS migrated_playlists (
    source_playlist_id TEXT PRIMARY KEY,
    target_playlist_id TEXT UNIQUE,
    name TEXT NOT NULL,
    status TEXT NOT NULL,
    last_updated INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS migrated_tracks (
    source_playlist_id TEXT NOT NULL,
    source_track_id TEXT NOT NULL,
    target_track_id TEXT,
    status TEXT NOT NULL,
    last_updated INTEGER NOT NULL,
    PRIMARY KEY (source_playlist_id, source_track_id),
    UNIQUE (source_playlist_id, target_track_id),
    FOREIGN KEY (source_playlist_id)
        REFERENCES migrated_playlists(source_playlist_id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_migrated_tracks_status
    ON migrated_tracks(source_playlist_id, status);
"""


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


class Database:
    """
    Thread-safe SQLite database implementing the State, Config and Token stores.

    Uses a single persistent connection with thread locking for safety.
    All public methods acquire self._lock before executing.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

        if not db_path.parent.exists():
            raise DatabaseError(
                f"Parent directory does not exist: {db_path.parent}",
                details={"path": str(db_path.parent)}
            )

        try:
            self._init_database()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to initialize database: {e}",
                details={"path": str(db_path)}
            ) from e

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get the persistent database connection as a context manager.

        The connection is created once and reused for all operations.
        Any sqlite3 error raised inside the block is rolled back and
        re-raised as DatabaseError unless it was already translated.
        """
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False  # We handle thread safety with _lock
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.execute("PRAGMA journal_mode = WAL")
        try:
            yield self._conn
        except sqlite3.IntegrityError:
            self._conn.rollback()
            raise
        except sqlite3.Error as e:
            self._conn.rollback()
            raise DatabaseError(
                f"Database operation failed: {e}",
                details={"path": str(self.db_path), "original_error": str(e)}
            ) from e

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __del__(self) -> None:
        """Ensure connection is closed on garbage collection."""
        if hasattr(self, '_conn') and self._conn is not None:
            try:
                self._conn.close()
            except Exception:
                pass

    def _init_database(self) -> None:
        with self._get_connection() as conn:
            conn.executescript(_SCHEMA_SQL)

            cursor = conn.execute("SELECT version FROM schema_version LIMIT 1")
            row = cursor.fetchone()

            if row is None:
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (DATABASE_VERSION,))
            elif row[0] != DATABASE_VERSION:
                raise DatabaseError(
                    f"Database version mismatch: expected {DATABASE_VERSION}, got {row[0]}",
                    details={"expected": DATABASE_VERSION, "actual": row[0]}
                )

            # Seed defaults without overwriting values the user changed
            conn.execute(
                "INSERT OR IGNORE INTO config (key, value) VALUES (?, ?)",
                (MATCH_THRESHOLD_KEY, str(DEFAULT_MATCH_THRESHOLD))
            )
            conn.commit()

    # =========================================================================
    # Playlist Records
    # =========================================================================

    @staticmethod
    def _playlist_from_row(row: sqlite3.Row) -> PlaylistRecord:
        return PlaylistRecord(
            source_playlist_id=row["source_playlist_id"],
            name=row["name"],
            status=PlaylistStatus(row["status"]),
            target_playlist_id=row["target_playlist_id"],
            last_updated=row["last_updated"],
        )

    def get_playlist(self, source_playlist_id: str) -> PlaylistRecord | None:
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "SELECT * FROM migrated_playlists WHERE source_playlist_id = ?",
                    (source_playlist_id,)
                )
                row = cursor.fetchone()
                return self._playlist_from_row(row) if row else None

    def get_all_playlists(self) -> list[PlaylistRecord]:
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("SELECT * FROM migrated_playlists ORDER BY name")
                return [self._playlist_from_row(row) for row in cursor.fetchall()]

    def upsert_playlist(self, record: PlaylistRecord) -> PlaylistRecord:
        """
        Insert or replace a playlist record, stamping last_updated.

        Returns:
            The record as stored, with last_updated set to now.

        Raises:
            DatabaseError: If target_playlist_id is already used by another
                           playlist (UNIQUE constraint).
        """
        stamp = now_ms()
        with self._lock:
            with self._get_connection() as conn:
                try:
                    conn.execute("""
                        INSERT INTO migrated_playlists
                            (source_playlist_id, target_playlist_id, name, status, last_updated)
                        VALUES (?, ?, ?, ?, ?)
                        ON CONFLICT(source_playlist_id) DO UPDATE SET
                            target_playlist_id = excluded.target_playlist_id,
                            name = excluded.name,
                            status = excluded.status,
                            last_updated = excluded.last_updated
                    """, (
                        record.source_playlist_id,
                        record.target_playlist_id,
                        record.name,
                        PlaylistStatus(record.status).value,
                        stamp,
                    ))
                    conn.commit()
                except sqlite3.IntegrityError as e:
                    conn.rollback()
                    raise DatabaseError(
                        f"Target playlist {record.target_playlist_id} is already "
                        f"linked to another source playlist",
                        details={
                            "source_playlist_id": record.source_playlist_id,
                            "target_playlist_id": record.target_playlist_id,
                            "original_error": str(e),
                        }
                    ) from e
        return PlaylistRecord(
            source_playlist_id=record.source_playlist_id,
            name=record.name,
            status=PlaylistStatus(record.status),
            target_playlist_id=record.target_playlist_id,
            last_updated=stamp,
        )

    def delete_playlist_and_tracks(self, source_playlist_id: str) -> bool:
        """
        Delete all track records of a playlist, then the playlist record.

        Returns:
            True if a playlist record existed, False otherwise.
        """
        with self._lock:
            with self._get_connection() as conn:
                conn.execute(
                    "DELETE FROM migrated_tracks WHERE source_playlist_id = ?",
                    (source_playlist_id,)
                )
                cursor = conn.execute(
                    "DELETE FROM migrated_playlists WHERE source_playlist_id = ?",
                    (source_playlist_id,)
                )
                conn.commit()
                return cursor.rowcount > 0

    # =========================================================================
    # Track Records
    # =========================================================================

    @staticmethod
    def _track_from_row(row: sqlite3.Row) -> TrackRecord:
        return TrackRecord(
            source_playlist_id=row["source_playlist_id"],
            source_track_id=row["source_track_id"],
            status=TrackStatus(row["status"]),
            target_track_id=row["target_track_id"],
            last_updated=row["last_updated"],
        )

    def get_track(self, source_playlist_id: str, source_track_id: str) -> TrackRecord | None:
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("""
                    SELECT * FROM migrated_tracks
                    WHERE source_playlist_id = ? AND source_track_id = ?
                """, (source_playlist_id, source_track_id))
                row = cursor.fetchone()
                return self._track_from_row(row) if row else None

    def get_playlist_tracks(self, source_playlist_id: str) -> list[TrackRecord]:
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("""
                    SELECT * FROM migrated_tracks
                    WHERE source_playlist_id = ?
                    ORDER BY last_updated
                """, (source_playlist_id,))
                return [self._track_from_row(row) for row in cursor.fetchall()]

    def upsert_track(self, record: TrackRecord) -> TrackRecord:
        """
        Insert or replace a track record, stamping last_updated.

        Returns:
            The record as stored, with last_updated set to now.

        Raises:
            TrackConflictError: If target_track_id is already recorded for
                                another track of the same playlist.
            DatabaseError: If the playlist record does not exist.
        """
        stamp = now_ms()
        with self._lock:
            with self._get_connection() as conn:
                try:
                    conn.execute("""
                        INSERT INTO migrated_tracks
                            (source_playlist_id, source_track_id, target_track_id, status, last_updated)
                        VALUES (?, ?, ?, ?, ?)
                        ON CONFLICT(source_playlist_id, source_track_id) DO UPDATE SET
                            target_track_id = excluded.target_track_id,
                            status = excluded.status,
                            last_updated = excluded.last_updated
                    """, (
                        record.source_playlist_id,
                        record.source_track_id,
                        record.target_track_id,
                        TrackStatus(record.status).value,
                        stamp,
                    ))
                    conn.commit()
                except sqlite3.IntegrityError as e:
                    conn.rollback()
                    if "target_track_id" in str(e):
                        raise TrackConflictError(
                            f"Target track {record.target_track_id} is already recorded "
                            f"for playlist {record.source_playlist_id}",
                            target_track_id=record.target_track_id or "",
                            details={
                                "source_playlist_id": record.source_playlist_id,
                                "source_track_id": record.source_track_id,
                            }
                        ) from e
                    raise DatabaseError(
                        f"Failed to store track {record.source_track_id}: {e}",
                        details={
                            "source_playlist_id": record.source_playlist_id,
                            "source_track_id": record.source_track_id,
                            "original_error": str(e),
                        }
                    ) from e
        return TrackRecord(
            source_playlist_id=record.source_playlist_id,
            source_track_id=record.source_track_id,
            status=TrackStatus(record.status),
            target_track_id=record.target_track_id,
            last_updated=stamp,
        )

    def find_track_by_target(
        self, source_playlist_id: str, target_track_id: str
    ) -> TrackRecord | None:
        """Get the track record of a playlist that already owns a target id."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("""
                    SELECT * FROM migrated_tracks
                    WHERE source_playlist_id = ? AND target_track_id = ?
                """, (source_playlist_id, target_track_id))
                row = cursor.fetchone()
                return self._track_from_row(row) if row else None

    def count_tracks(self, source_playlist_id: str) -> TrackCounts:
        """Count track records of a playlist by status."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("""
                    SELECT status, COUNT(*) AS n FROM migrated_tracks
                    WHERE source_playlist_id = ?
                    GROUP BY status
                """, (source_playlist_id,))
                counts = {row["status"]: row["n"] for row in cursor.fetchall()}
        return TrackCounts(
            migrated=counts.get(TrackStatus.MIGRATED.value, 0),
            skipped=counts.get(TrackStatus.SKIPPED.value, 0),
            failed=counts.get(TrackStatus.FAILED.value, 0),
            pending=counts.get(TrackStatus.PENDING.value, 0),
        )

    # =========================================================================
    # Config Store
    # =========================================================================

    def get_match_threshold(self) -> float:
        """
        Get the configured match threshold.

        Raises:
            DatabaseError: If the stored value is missing or not a number.
        """
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "SELECT value FROM config WHERE key = ?", (MATCH_THRESHOLD_KEY,)
                )
                row = cursor.fetchone()

        if row is None:
            return DEFAULT_MATCH_THRESHOLD
        try:
            return float(row["value"])
        except (TypeError, ValueError) as e:
            raise DatabaseError(
                f"Stored match_threshold is not a number: {row['value']!r}",
                details={"key": MATCH_THRESHOLD_KEY}
            ) from e

    def set_match_threshold(self, value: float) -> float:
        """
        Persist a new match threshold.

        Args:
            value: Threshold in the closed interval [0, 1].

        Returns:
            The stored value as a float.

        Raises:
            ValidationError: If value is not a number or is outside [0, 1].
                             Nothing is written in that case.
        """
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(
                "Invalid match_threshold value. Must be a number between 0 and 1.",
                details={"value": value}
            )
        threshold = float(value)
        # NaN fails both comparisons, so test the accepted range directly
        if not 0.0 <= threshold <= 1.0:
            raise ValidationError(
                "Invalid match_threshold value. Must be a number between 0 and 1.",
                details={"value": value}
            )

        with self._lock:
            with self._get_connection() as conn:
                conn.execute("""
                    INSERT INTO config (key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """, (MATCH_THRESHOLD_KEY, repr(threshold)))
                conn.commit()
        return threshold

    # =========================================================================
    # Token Store
    # =========================================================================

    def get_token(self, service: Service) -> TokenRecord | None:
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "SELECT * FROM tokens WHERE service = ?", (Service(service).value,)
                )
                row = cursor.fetchone()
                if row is None:
                    return None
                return TokenRecord(
                    service=Service(row["service"]),
                    access_token=row["access_token"],
                    auth_type=AuthType(row["auth_type"] or AuthType.OAUTH.value),
                    refresh_token=row["refresh_token"],
                    expires_at=row["expires_at"],
                    raw_value=row["raw_value"],
                )

    def save_token(self, record: TokenRecord) -> None:
        """Insert or replace the full token row for a service."""
        with self._lock:
            with self._get_connection() as conn:
                conn.execute("""
                    INSERT OR REPLACE INTO tokens
                        (service, access_token, refresh_token, expires_at, auth_type, raw_value)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, (
                    Service(record.service).value,
                    record.access_token,
                    record.refresh_token,
                    record.expires_at,
                    AuthType(record.auth_type).value,
                    record.raw_value,
                ))
                conn.commit()

    def update_access_token(
        self,
        service: Service,
        access_token: str,
        expires_at: int | None,
        refresh_token: str | None = None
    ) -> None:
        """
        Store a refreshed access token.

        The refresh token is only replaced when the Auth Service rotated it.
        """
        with self._lock:
            with self._get_connection() as conn:
                conn.execute("""
                    UPDATE tokens SET
                        access_token = ?,
                        expires_at = ?,
                        refresh_token = COALESCE(?, refresh_token)
                    WHERE service = ?
                """, (access_token, expires_at, refresh_token, Service(service).value))
                conn.commit()

    def delete_token(self, service: Service) -> bool:
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "DELETE FROM tokens WHERE service = ?", (Service(service).value,)
                )
                conn.commit()
                return cursor.rowcount > 0
