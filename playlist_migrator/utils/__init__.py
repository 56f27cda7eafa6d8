"""
Utility functions for playlist-migrator.

This module provides small helpers used across the application:
    - Spotify id extraction from URLs and URIs
    - ISO 8601 duration parsing for YouTube contentDetails
    - Duration formatting for display

Usage:
    from playlist_migrator.utils import (
        extract_playlist_id,
        parse_iso8601_duration,
        format_duration
    )
"""

import re


_ISO8601_DURATION = re.compile(
    r"^P(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$"
)


def extract_spotify_id(url_or_id: str) -> str:
    """
    Extract Spotify ID from a URL or return ID as-is.

    Handles various Spotify URL formats:
        - https://open.spotify.com/playlist/ID
        - https://open.spotify.com/playlist/ID?si=xxx
        - spotify:playlist:ID
        - Just the ID

    Examples:
        extract_spotify_id("https://open.spotify.com/track/abc123?si=xyz")
        # Returns: "abc123"

        extract_spotify_id("spotify:track:abc123")
        # Returns: "abc123"
    """
    url_or_id = url_or_id.strip()

    if url_or_id.startswith("spotify:"):
        return url_or_id.split(":")[-1]

    if "spotify.com" in url_or_id:
        url_or_id = url_or_id.split("?")[0]
        return url_or_id.rstrip("/").split("/")[-1]

    return url_or_id


def extract_playlist_id(url_or_id: str) -> str:
    """
    Extract a playlist ID from a Spotify playlist URL, URI or bare ID.

    Raises:
        ValueError: If a URL or URI is given that does not point to a playlist.

    Examples:
        extract_playlist_id("https://open.spotify.com/playlist/37i9dQZF1DXcBWIGoYBM5M")
        # Returns: "37i9dQZF1DXcBWIGoYBM5M"
    """
    value = url_or_id.strip()
    is_reference = value.startswith("spotify:") or "spotify.com" in value
    if is_reference and "playlist" not in value:
        raise ValueError(f"Not a playlist URL: {url_or_id}")
    playlist_id = extract_spotify_id(value)
    if not playlist_id:
        raise ValueError(f"Empty playlist id: {url_or_id!r}")
    return playlist_id


def parse_iso8601_duration(duration: str) -> int:
    """
    Parse an ISO 8601 duration as returned by the YouTube Data API.

    Args:
        duration: Duration string such as "PT3M33S", "PT1H2M", "P0D".

    Returns:
        Duration in milliseconds.

    Raises:
        ValueError: If the string is not an ISO 8601 duration.

    Examples:
        parse_iso8601_duration("PT3M33S")   # 213000
        parse_iso8601_duration("PT1H")      # 3600000
        parse_iso8601_duration("P0D")       # 0 (live streams)
    """
    match = _ISO8601_DURATION.match(duration or "")
    if not match or duration in ("P", "PT"):
        raise ValueError(f"Invalid ISO 8601 duration: {duration!r}")

    days = int(match.group("days") or 0)
    hours = int(match.group("hours") or 0)
    minutes = int(match.group("minutes") or 0)
    seconds = float(match.group("seconds") or 0)

    total_seconds = days * 86400 + hours * 3600 + minutes * 60 + seconds
    return int(round(total_seconds * 1000))


def format_duration(milliseconds: int) -> str:
    """
    Format a duration in milliseconds as "M:SS" or "H:MM:SS".

    Examples:
        format_duration(225000)   # "3:45"
        format_duration(3750000)  # "1:02:30"
    """
    seconds = max(milliseconds, 0) // 1000
    if seconds < 3600:
        return f"{seconds // 60}:{seconds % 60:02d}"
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    return f"{hours}:{minutes:02d}:{seconds % 60:02d}"
