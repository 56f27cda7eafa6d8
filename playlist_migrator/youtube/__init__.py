"""
YouTube (target catalog) module for playlist-migrator.

This module handles everything on the target side of a migration:
searching for candidate videos, scoring them against Spotify tracks,
and writing the chosen videos into the target playlist.

Components:
    - YouTubeCatalog: YouTube Data API v3 client
    - Candidate / MatchDecision: Candidate and selection models
    - score / select_best: The title/duration/channel match heuristic

Usage:
    from playlist_migrator.youtube import YouTubeCatalog, select_best

    ids = catalog.search_candidates(track.search_query, limit=5)
    decision = select_best(track, catalog.fetch_candidate_details(ids), threshold)
    if decision.accepted:
        catalog.add_track(playlist_id, decision.match.video_id)
"""

from playlist_migrator.youtube.client import YouTubeCatalog, classify_youtube_response
from playlist_migrator.youtube.models import Candidate, MatchDecision, ScoredCandidate
from playlist_migrator.youtube.scorer import (
    duration_score,
    is_official_channel,
    score,
    select_best,
    title_similarity,
)

__all__ = [
    "YouTubeCatalog",
    "classify_youtube_response",
    "Candidate",
    "MatchDecision",
    "ScoredCandidate",
    "duration_score",
    "is_official_channel",
    "score",
    "select_best",
    "title_similarity",
]
