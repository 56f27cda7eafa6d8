"""
playlist-migrator: Migrate Spotify playlists to YouTube.

This package matches every track of a Spotify playlist against YouTube
search results and inserts the best match into a new private YouTube
playlist. Per-track progress is persisted in SQLite, so a migration can
be interrupted, resumed or retried without duplicating work.

Packages:
    - core: configuration, database, logging, exceptions, record models
    - auth: credential resolution and OAuth token refresh
    - spotify: source catalog client
    - youtube: target catalog client and match scorer
    - migration: orchestrator, progress channel, control surface

Usage:
    playlist-migrate migrate "https://open.spotify.com/playlist/..."
"""

__version__ = "0.1.0"
__author__ = "playlist-migrator contributors"
__license__ = "MIT"

# Convenience imports for common usage
from playlist_migrator.core import (
    Config,
    Database,
    MigratorError,
    get_logger,
    load_config,
    setup_logging,
)
from playlist_migrator.migration import MigrationService, Migrator, ProgressEvent

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "Database",
    "setup_logging",
    "get_logger",
    "MigratorError",
    # Migration
    "MigrationService",
    "Migrator",
    "ProgressEvent",
]
