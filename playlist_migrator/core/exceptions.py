"""
Exception classes for playlist-migrator.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message and an optional details
dictionary, and the hierarchy separates the failure modes the migration
engine treats differently.

Exception Hierarchy:
    MigratorError (base)
        ConfigError - Configuration file issues
        DatabaseError - SQLite database issues
            TrackConflictError - Target track already recorded for a playlist
        ValidationError - Bad input rejected at the boundary
        AuthenticationRequiredError - No stored credentials for a service
        RefreshFailedError - OAuth refresh-token exchange failed
        CatalogError - Classified remote catalog failure
            CatalogAuthError - Credentials rejected by the catalog
            QuotaExceededError - Quota or rate limit exhausted
            CatalogNotFoundError - Resource does not exist
            TransientNetworkError - Timeout, connection or 5xx failure
            UnknownCatalogError - Anything else the catalog returned
            ResponseFormatError - Malformed response payload
        MigrationInProgressError - Same playlist already being migrated
        ChannelClosedError - Progress consumer went away

Severity:
    AuthenticationRequiredError, RefreshFailedError and QuotaExceededError
    are fatal for a migration run. Every other CatalogError is isolated to
    the track being processed.
"""


class MigratorError(Exception):
    """
    Base exception for all playlist-migrator errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch all migrator errors with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., ids, status codes).

    Example:
        try:
            service.run_migration(playlist_id, sink)
        except MigratorError as e:
            logger.error(f"Migration failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'service': "source" or "target"
                     - 'http_status': HTTP status code of a failed request
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(MigratorError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - config.yaml has invalid YAML syntax
        - A section is not a dictionary
        - Invalid field values (e.g., negative timeout)
    """
    pass


class DatabaseError(MigratorError):
    """
    Raised when there's an issue with the SQLite database.

    Common causes:
        - Parent directory of the database file does not exist
        - Database file is corrupted or locked
        - Schema version mismatch
    """
    pass


class TrackConflictError(DatabaseError):
    """
    Raised when a target track id is already recorded for the same playlist.

    The storage layer enforces uniqueness of (source_playlist_id,
    target_track_id). Two different source tracks that resolve to the same
    target video collide here instead of silently overwriting each other.

    Attributes:
        target_track_id: The conflicting target id.
    """

    def __init__(
        self,
        message: str,
        target_track_id: str,
        details: dict | None = None
    ) -> None:
        super().__init__(message, details)
        self.target_track_id = target_track_id


class ValidationError(MigratorError):
    """
    Raised when user-supplied input is rejected at the boundary.

    No state is mutated when this error is raised.

    Common causes:
        - match_threshold outside [0, 1] or not a number
        - Session header bundle that is not a JSON object of strings
    """
    pass


class AuthenticationRequiredError(MigratorError):
    """
    Raised when no credentials are stored for a service.

    This is a CRITICAL error raised before any remote call is made.
    The user must authenticate (OAuth or session headers) first.

    Attributes:
        service: The service missing credentials ("source" or "target").
    """

    def __init__(self, service: str, details: dict | None = None) -> None:
        super().__init__(
            f"No credentials stored for the {service} service. "
            f"Authenticate with the {service} service first.",
            details
        )
        self.service = service


class RefreshFailedError(MigratorError):
    """
    Raised when an expired OAuth token cannot be refreshed.

    This is a CRITICAL error: it aborts any in-flight migration.

    Attributes:
        service: The service whose refresh failed.
    """

    def __init__(self, service: str, message: str, details: dict | None = None) -> None:
        super().__init__(message, details)
        self.service = service


class CatalogError(MigratorError):
    """
    Base class for classified remote catalog failures.

    Every Catalog Client call translates the underlying HTTP/library error
    into one of the subclasses below, so the orchestrator can decide between
    per-track isolation and escalation without inspecting responses.

    Attributes:
        service: Which catalog produced the error ("source" or "target").
        http_status: HTTP status code if one was received, else None.
    """

    kind = "unknown"

    def __init__(
        self,
        message: str,
        service: str = "",
        http_status: int | None = None,
        details: dict | None = None
    ) -> None:
        super().__init__(message, details)
        self.service = service
        self.http_status = http_status


class CatalogAuthError(CatalogError):
    """
    Raised when the catalog rejects the credentials (401/403).

    For session-mode credentials this is the only way an expired header
    bundle is discovered; the user must re-capture headers out of band.
    """

    kind = "auth"


class QuotaExceededError(CatalogError):
    """
    Raised when the catalog reports quota or rate-limit exhaustion.

    This is ESCALATED by the orchestrator: the playlist is marked failed
    and the whole run is aborted.
    """

    kind = "quota"


class CatalogNotFoundError(CatalogError):
    """Raised when the requested playlist, track or video does not exist (404)."""

    kind = "not_found"


class TransientNetworkError(CatalogError):
    """
    Raised on timeouts, connection failures and 5xx responses.

    Handled by per-track isolation, except during target playlist
    creation where it is fatal for the run.
    """

    kind = "transient"


class UnknownCatalogError(CatalogError):
    """Raised for any catalog failure that fits no other classification."""

    kind = "unknown"


class ResponseFormatError(CatalogError):
    """
    Raised when a catalog response is missing expected fields.

    Surfaced at the point where the malformed payload is used, e.g. a
    video without a parseable duration or a playlist without an id.
    """

    kind = "format"


class MigrationInProgressError(MigratorError):
    """
    Raised when a migration is started for a playlist that is already running.

    The State Store offers no compare-and-swap, so two concurrent runs for
    the same playlist id would race on the same track records.
    """

    def __init__(self, playlist_id: str) -> None:
        super().__init__(
            f"A migration for playlist {playlist_id} is already running",
            details={"playlist_id": playlist_id}
        )
        self.playlist_id = playlist_id


class ChannelClosedError(MigratorError):
    """
    Raised when writing to a progress channel whose consumer has closed it.

    The orchestrator logs this and keeps processing, so a later resume
    starts from correctly persisted state.
    """
    pass
