"""
Core module for playlist-migrator.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - models: Persisted record types and status enums
    - database: Thread-safe SQLite database (state, config and token stores)
    - logger: Logging system with multiple outputs

Usage:
    from playlist_migrator.core import (
        Config, load_config,
        Database,
        setup_logging, get_logger,
        MigratorError, ConfigError, DatabaseError
    )
"""

from playlist_migrator.core.config import (
    Config,
    NetworkConfig,
    OAuthClientConfig,
    load_config,
)
from playlist_migrator.core.database import (
    DEFAULT_MATCH_THRESHOLD,
    Database,
    now_ms,
)
from playlist_migrator.core.exceptions import (
    AuthenticationRequiredError,
    CatalogAuthError,
    CatalogError,
    CatalogNotFoundError,
    ChannelClosedError,
    ConfigError,
    DatabaseError,
    MigrationInProgressError,
    MigratorError,
    QuotaExceededError,
    RefreshFailedError,
    ResponseFormatError,
    TrackConflictError,
    TransientNetworkError,
    UnknownCatalogError,
    ValidationError,
)
from playlist_migrator.core.logger import (
    get_logger,
    log_track_failure,
    setup_logging,
    shutdown_logging,
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

__all__ = [
    # Config
    "Config",
    "NetworkConfig",
    "OAuthClientConfig",
    "load_config",
    # Database
    "Database",
    "DEFAULT_MATCH_THRESHOLD",
    "now_ms",
    # Models
    "AuthType",
    "PlaylistRecord",
    "PlaylistStatus",
    "Service",
    "TokenRecord",
    "TrackCounts",
    "TrackRecord",
    "TrackStatus",
    # Exceptions
    "MigratorError",
    "ConfigError",
    "DatabaseError",
    "TrackConflictError",
    "ValidationError",
    "AuthenticationRequiredError",
    "RefreshFailedError",
    "CatalogError",
    "CatalogAuthError",
    "QuotaExceededError",
    "CatalogNotFoundError",
    "TransientNetworkError",
    "UnknownCatalogError",
    "ResponseFormatError",
    "MigrationInProgressError",
    "ChannelClosedError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_track_failure",
    "shutdown_logging",
]
