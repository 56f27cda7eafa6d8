"""
Spotify (source catalog) module for playlist-migrator.

Components:
    - SpotifyCatalog: spotipy-backed client for playlists and tracks
    - SourceTrack / SourcePlaylist: Immutable source models
"""

from playlist_migrator.spotify.client import SpotifyCatalog, classify_spotify_error
from playlist_migrator.spotify.models import SourcePlaylist, SourceTrack

__all__ = [
    "SpotifyCatalog",
    "classify_spotify_error",
    "SourcePlaylist",
    "SourceTrack",
]
