"""
Spotify catalog client for playlist-migrator.

This module wraps spotipy for the read-only operations the migration needs
from the source catalog: playlist metadata, the full track list and the
user's playlists.

Authentication:
    The client does not run any OAuth flow itself. Credentials come from
    the Token Provider on every call, either a Bearer token or a captured
    session header bundle, and are attached to a requests.Session that
    spotipy uses for transport. An expired OAuth token is therefore
    refreshed between calls without rebuilding the client.

Error Classification:
    Every spotipy/requests failure is mapped to a CatalogError subclass:
        401, 403      -> CatalogAuthError
        429           -> QuotaExceededError
        404           -> CatalogNotFoundError
        5xx, timeout,
        connection    -> TransientNetworkError
        anything else -> UnknownCatalogError
    Payloads missing required fields raise ResponseFormatError.

Usage:
    catalog = SpotifyCatalog(partial(provider.get_credentials, Service.SOURCE))
    playlist = catalog.fetch_playlist("37i9dQZF1DXcBWIGoYBM5M")
    tracks = catalog.fetch_tracks(playlist.id)
"""

from typing import Any, Callable

import requests
import spotipy

from playlist_migrator.auth.credentials import Credentials
from playlist_migrator.core.exceptions import (
    CatalogAuthError,
    CatalogError,
    CatalogNotFoundError,
    QuotaExceededError,
    ResponseFormatError,
    TransientNetworkError,
    UnknownCatalogError,
)
from playlist_migrator.core.logger import get_logger
from playlist_migrator.core.models import Service
from playlist_migrator.spotify.models import SourcePlaylist, SourceTrack

logger = get_logger(__name__)


# Spotify caps playlist_items at 100 and current_user_playlists at 50
PLAYLIST_ITEMS_PAGE_SIZE = 100
USER_PLAYLISTS_PAGE_SIZE = 50

PLAYLIST_FIELDS = "id,name,description,public,images,tracks.total"


def classify_spotify_error(error: Exception, action: str) -> CatalogError:
    """
    Translate a spotipy or requests exception into a CatalogError.

    Args:
        error: The exception raised by spotipy or the transport.
        action: Short description of the failed call for the message,
                e.g. "fetch playlist 37i9dQ...".

    Returns:
        The classified CatalogError (not raised).
    """
    source = Service.SOURCE.value

    if isinstance(error, spotipy.SpotifyException):
        status = error.http_status
        details = {"http_status": status, "original_error": str(error)}
        if status in (401, 403):
            return CatalogAuthError(
                f"Spotify rejected the credentials while trying to {action}",
                service=source, http_status=status, details=details
            )
        if status == 429:
            return QuotaExceededError(
                f"Spotify rate limit reached while trying to {action}",
                service=source, http_status=status, details=details
            )
        if status == 404:
            return CatalogNotFoundError(
                f"Spotify could not find the resource while trying to {action}",
                service=source, http_status=status, details=details
            )
        if status is not None and status >= 500:
            return TransientNetworkError(
                f"Spotify server error {status} while trying to {action}",
                service=source, http_status=status, details=details
            )
        return UnknownCatalogError(
            f"Failed to {action}: {error.msg}",
            service=source, http_status=status, details=details
        )

    if isinstance(error, (requests.Timeout, requests.ConnectionError)):
        return TransientNetworkError(
            f"Network error while trying to {action}: {error}",
            service=source, details={"original_error": str(error)}
        )

    return UnknownCatalogError(
        f"Failed to {action}: {error}",
        service=source, details={"original_error": str(error)}
    )


class SpotifyCatalog:
    """
    Source catalog client backed by spotipy.

    Attributes:
        _credentials: Callable returning fresh Credentials for the source service.
        _timeout: Seconds before any request is abandoned.

    Example:
        catalog = SpotifyCatalog(lambda: Bearer("token"), timeout=10)
        for track in catalog.fetch_tracks("37i9dQZF1DXcBWIGoYBM5M"):
            print(track.display_name)
    """

    def __init__(
        self,
        credentials: Callable[[], Credentials],
        timeout: float = 15.0
    ) -> None:
        self._credentials = credentials
        self._timeout = timeout

    def _client(self) -> spotipy.Spotify:
        """
        Build a spotipy client carrying the current credentials.

        A new session is created per call so a refreshed token or re-captured
        header bundle is picked up immediately.
        """
        session = requests.Session()
        session.headers.update(self._credentials().as_headers())
        return spotipy.Spotify(requests_session=session, requests_timeout=self._timeout)

    def _call(self, action: str, func: Callable[[spotipy.Spotify], Any]) -> Any:
        try:
            result = func(self._client())
        except (spotipy.SpotifyException, requests.RequestException) as e:
            raise classify_spotify_error(e, action) from e
        if not isinstance(result, dict):
            raise ResponseFormatError(
                f"Spotify returned an unexpected payload while trying to {action}",
                service=Service.SOURCE.value,
                details={"payload_type": type(result).__name__}
            )
        return result

    # =========================================================================
    # Playlist Operations
    # =========================================================================

    def fetch_playlist(self, playlist_id: str) -> SourcePlaylist:
        """
        Get playlist metadata from Spotify.

        Raises:
            CatalogError: Classified failure (see module docstring).
            ResponseFormatError: If the payload has no playlist id.
        """
        action = f"fetch playlist {playlist_id}"
        data = self._call(action, lambda sp: sp.playlist(playlist_id, fields=PLAYLIST_FIELDS))
        if not data.get("id"):
            raise ResponseFormatError(
                f"Spotify playlist payload has no id ({playlist_id})",
                service=Service.SOURCE.value
            )
        return SourcePlaylist.from_api(data)

    def fetch_tracks(self, playlist_id: str) -> list[SourceTrack]:
        """
        Get ALL tracks from a playlist, handling pagination automatically.

        Returns:
            SourceTracks in playlist order. Items whose track was removed
            from Spotify are returned as id-less tracks.

        Raises:
            CatalogError: Classified failure of any page request.
            ResponseFormatError: If a page has no 'items' list.
        """
        tracks: list[SourceTrack] = []
        offset = 0

        while True:
            action = f"fetch tracks of playlist {playlist_id} (offset {offset})"
            page = self._call(
                action,
                lambda sp: sp.playlist_items(
                    playlist_id,
                    limit=PLAYLIST_ITEMS_PAGE_SIZE,
                    offset=offset,
                    additional_types=["track"]
                )
            )
            items = page.get("items")
            if not isinstance(items, list):
                raise ResponseFormatError(
                    f"Spotify playlist page has no items ({playlist_id})",
                    service=Service.SOURCE.value,
                    details={"offset": offset}
                )

            tracks.extend(SourceTrack.from_playlist_item(item or {}) for item in items)

            if page.get("next") is None or not items:
                break
            offset += len(items)

        logger.debug(f"Fetched {len(tracks)} tracks from Spotify playlist {playlist_id}")
        return tracks

    def list_playlists(self) -> list[SourcePlaylist]:
        """
        Get all playlists of the authenticated user.

        Raises:
            CatalogError: Classified failure of any page request.
        """
        playlists: list[SourcePlaylist] = []
        offset = 0

        while True:
            page = self._call(
                "list user playlists",
                lambda sp: sp.current_user_playlists(limit=USER_PLAYLISTS_PAGE_SIZE, offset=offset)
            )
            items = page.get("items") or []
            playlists.extend(SourcePlaylist.from_api(item) for item in items if item and item.get("id"))

            if page.get("next") is None or not items:
                break
            offset += len(items)

        return playlists
