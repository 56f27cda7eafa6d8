"""
Migration module for playlist-migrator.

Components:
    - Migrator: Resumable per-playlist orchestrator
    - MigrationService: Control surface with per-playlist locking
    - ProgressChannel: Bounded event queue between worker and consumer
    - ProgressEvent / MigrationSummary: Progress and outcome types
"""

from playlist_migrator.migration.channel import ProgressChannel
from playlist_migrator.migration.events import (
    EventType,
    MigrationSummary,
    ProgressEvent,
    ProgressSink,
)
from playlist_migrator.migration.orchestrator import Migrator
from playlist_migrator.migration.service import MigrationService, PlaylistOverview

__all__ = [
    "ProgressChannel",
    "EventType",
    "MigrationSummary",
    "ProgressEvent",
    "ProgressSink",
    "Migrator",
    "MigrationService",
    "PlaylistOverview",
]
