"""
Data models for Spotify entities.

This module defines immutable dataclasses for the parts of Spotify
playlists and tracks the migration needs: enough to build a search
query, score candidates and report progress.

Design Decisions:
    - All dataclasses are frozen (immutable) to prevent accidental modification
    - Factories take raw Spotify Web API dicts so the client stays thin
    - A track without an id (local files, removed tracks) is still
      represented; the orchestrator decides what to do with it

Usage:
    from playlist_migrator.spotify.models import SourceTrack, SourcePlaylist

    track = SourceTrack.from_playlist_item(item)
    print(track.search_query)
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SourceTrack:
    """
    Immutable representation of a track inside a Spotify playlist.

    Attributes:
        id: Spotify track ID, or None for local files and removed tracks.
            Example: "4cOdK2wGLETKBW3PvgPWqT"

        name: Track title as it appears on Spotify.
              Example: "Bohemian Rhapsody"

        artists: All artist names, in Spotify's order.
                 Example: ("Calvin Harris", "Dua Lipa")

        album: Album name, empty if unknown.

        duration_ms: Track duration in milliseconds, 0 if unknown.
                     Used by the scorer to compare against candidate durations.

        url: Spotify URL for the track, empty if unavailable.
    """
    id: str | None
    name: str
    artists: tuple[str, ...] = ()
    album: str = ""
    duration_ms: int = 0
    url: str = ""

    @property
    def artist(self) -> str:
        """Primary artist, for display."""
        return self.artists[0] if self.artists else "Unknown Artist"

    @property
    def search_query(self) -> str:
        """
        Free-text query for the target catalog: "title artists album".

        Example:
            SourceTrack(id="x", name="One More Time", artists=("Daft Punk",),
                        album="Discovery").search_query
            # "One More Time Daft Punk Discovery"
        """
        parts = [self.name, " ".join(self.artists), self.album]
        return " ".join(part for part in parts if part).strip()

    @property
    def display_name(self) -> str:
        return f"{self.artist} - {self.name}"

    @classmethod
    def from_api(cls, track_data: dict[str, Any]) -> "SourceTrack":
        """Create a SourceTrack from a Spotify track object."""
        artists = tuple(
            a.get("name", "") for a in track_data.get("artists") or [] if a.get("name")
        )
        album_info = track_data.get("album") or {}
        return cls(
            id=track_data.get("id") or None,
            name=track_data.get("name") or "Unknown Track",
            artists=artists,
            album=album_info.get("name") or "",
            duration_ms=int(track_data.get("duration_ms") or 0),
            url=(track_data.get("external_urls") or {}).get("spotify", ""),
        )

    @classmethod
    def from_playlist_item(cls, item: dict[str, Any]) -> "SourceTrack":
        """
        Create a SourceTrack from a playlist_items() entry.

        The 'track' field is None for tracks that were removed from
        Spotify; such entries become an id-less SourceTrack.
        """
        track_data = item.get("track")
        if not track_data:
            return cls(id=None, name="Unavailable track")
        return cls.from_api(track_data)


@dataclass(frozen=True)
class SourcePlaylist:
    """
    Spotify playlist metadata.

    Attributes:
        id: Spotify playlist ID.
        name: Playlist name, reused as the target playlist title.
        description: Playlist description, copied to the target playlist.
        track_count: Number of items Spotify reports for the playlist.
        is_public: Public flag as reported by Spotify.
        image_url: First cover image URL, None if the playlist has no image.
    """
    id: str
    name: str
    description: str = ""
    track_count: int = 0
    is_public: bool = False
    image_url: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "SourcePlaylist":
        """Create a SourcePlaylist from a Spotify playlist object."""
        images = data.get("images") or []
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            description=data.get("description") or "",
            track_count=int((data.get("tracks") or {}).get("total") or 0),
            is_public=bool(data.get("public")),
            image_url=images[0].get("url") if images else None,
        )
