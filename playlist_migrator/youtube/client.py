"""
YouTube catalog client for playlist-migrator.

This module talks to the YouTube Data API v3 with requests. It covers the
write side of a migration: creating the target playlist, searching for
candidate videos, fetching their details and inserting the chosen video.

Endpoints used:
    POST playlists?part=snippet,status           create_playlist
    GET  search?part=snippet&type=video          search_candidates
    GET  videos?part=snippet,contentDetails      fetch_candidate_details
    POST playlistItems?part=snippet              add_track
    GET  playlists?part=snippet&mine=true        list_playlists

Quota:
    The Data API has a daily unit quota (a search costs 100 units, an
    insert 50). Exhaustion is reported as 403 with reason "quotaExceeded"
    and must be told apart from a real permission error, since the
    orchestrator aborts the whole run on quota but only fails one track on
    other errors.

Error Classification:
    403 + quota/rate reason, 429  -> QuotaExceededError
    401, 403                      -> CatalogAuthError
    404                           -> CatalogNotFoundError
    5xx, timeout, connection      -> TransientNetworkError
    anything else                 -> UnknownCatalogError
    malformed payload             -> ResponseFormatError
"""

from typing import Any, Callable

import requests

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
from playlist_migrator.youtube.models import Candidate

logger = get_logger(__name__)


API_BASE_URL = "https://www.googleapis.com/youtube/v3"

# Search restricted to the Music category
MUSIC_CATEGORY_ID = "10"

# videos.list accepts at most 50 ids per request
MAX_IDS_PER_REQUEST = 50

QUOTA_REASONS = frozenset({
    "quotaExceeded",
    "dailyLimitExceeded",
    "rateLimitExceeded",
    "userRateLimitExceeded",
})


def _error_reasons(body: dict[str, Any]) -> set[str]:
    error = body.get("error")
    if not isinstance(error, dict):
        return set()
    reasons = {e.get("reason") for e in error.get("errors") or [] if isinstance(e, dict)}
    reasons.discard(None)
    return reasons


def classify_youtube_response(response: requests.Response, action: str) -> CatalogError:
    """
    Translate a failed YouTube Data API response into a CatalogError.

    Args:
        response: The non-2xx response.
        action: Short description of the failed call for the message.

    Returns:
        The classified CatalogError (not raised).
    """
    status = response.status_code
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    error = body.get("error")
    api_message = error.get("message") if isinstance(error, dict) else None
    reasons = _error_reasons(body)
    message = api_message or response.reason or f"HTTP {status}"
    details = {"http_status": status, "reasons": sorted(reasons)}
    target = Service.TARGET.value

    if status == 429 or reasons & QUOTA_REASONS or "quota" in message.lower():
        return QuotaExceededError(
            f"YouTube quota exhausted while trying to {action}: {message}",
            service=target, http_status=status, details=details
        )
    if status in (401, 403):
        return CatalogAuthError(
            f"YouTube rejected the credentials while trying to {action}: {message}",
            service=target, http_status=status, details=details
        )
    if status == 404:
        return CatalogNotFoundError(
            f"YouTube could not find the resource while trying to {action}: {message}",
            service=target, http_status=status, details=details
        )
    if status >= 500:
        return TransientNetworkError(
            f"YouTube server error {status} while trying to {action}",
            service=target, http_status=status, details=details
        )
    return UnknownCatalogError(
        f"Failed to {action}: {message}",
        service=target, http_status=status, details=details
    )


class YouTubeCatalog:
    """
    Target catalog client for the YouTube Data API v3.

    Attributes:
        _credentials: Callable returning fresh Credentials for the target service.
        _timeout: Seconds before any request is abandoned.
        _session: requests session used for all calls.

    Example:
        catalog = YouTubeCatalog(partial(provider.get_credentials, Service.TARGET))
        playlist_id = catalog.create_playlist("Road Trip", "Migrated from Spotify")
        ids = catalog.search_candidates("One More Time Daft Punk Discovery", limit=5)
        candidates = catalog.fetch_candidate_details(ids)
    """

    def __init__(
        self,
        credentials: Callable[[], Credentials],
        timeout: float = 15.0,
        session: requests.Session | None = None
    ) -> None:
        self._credentials = credentials
        self._timeout = timeout
        self._session = session or requests.Session()

    def _request(
        self,
        method: str,
        path: str,
        action: str,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """
        Perform one API call and return the decoded JSON body.

        Raises:
            CatalogError: Classified failure.
            ResponseFormatError: If a 2xx body is not a JSON object.
        """
        headers = self._credentials().as_headers()
        headers["Accept"] = "application/json"
        if json_body is not None:
            headers["Content-Type"] = "application/json"

        try:
            response = self._session.request(
                method,
                f"{API_BASE_URL}/{path}",
                params=params,
                json=json_body,
                headers=headers,
                timeout=self._timeout,
            )
        except (requests.Timeout, requests.ConnectionError) as e:
            raise TransientNetworkError(
                f"Network error while trying to {action}: {e}",
                service=Service.TARGET.value,
                details={"original_error": str(e)}
            ) from e
        except requests.RequestException as e:
            raise UnknownCatalogError(
                f"Failed to {action}: {e}",
                service=Service.TARGET.value,
                details={"original_error": str(e)}
            ) from e

        if not response.ok:
            raise classify_youtube_response(response, action)

        try:
            body = response.json()
        except ValueError as e:
            raise ResponseFormatError(
                f"YouTube returned a non-JSON body while trying to {action}",
                service=Service.TARGET.value,
                http_status=response.status_code
            ) from e
        if not isinstance(body, dict):
            raise ResponseFormatError(
                f"YouTube returned an unexpected payload while trying to {action}",
                service=Service.TARGET.value,
                http_status=response.status_code
            )
        return body

    # =========================================================================
    # Playlist Operations
    # =========================================================================

    def create_playlist(self, name: str, description: str = "") -> str:
        """
        Create a private playlist and return its id.

        Raises:
            CatalogError: Classified failure.
            ResponseFormatError: If the created resource has no id.
        """
        body = self._request(
            "POST",
            "playlists",
            action=f"create playlist '{name}'",
            params={"part": "snippet,status"},
            json_body={
                "snippet": {"title": name, "description": description},
                "status": {"privacyStatus": "private"},
            },
        )
        playlist_id = body.get("id")
        if not isinstance(playlist_id, str) or not playlist_id:
            raise ResponseFormatError(
                f"Created YouTube playlist '{name}' has no id",
                service=Service.TARGET.value
            )
        logger.debug(f"Created YouTube playlist {playlist_id} for '{name}'")
        return playlist_id

    def add_track(self, playlist_id: str, video_id: str) -> None:
        """
        Append a video to a playlist.

        Raises:
            CatalogError: Classified failure.
        """
        self._request(
            "POST",
            "playlistItems",
            action=f"add video {video_id} to playlist {playlist_id}",
            params={"part": "snippet"},
            json_body={
                "snippet": {
                    "playlistId": playlist_id,
                    "resourceId": {"kind": "youtube#video", "videoId": video_id},
                }
            },
        )

    def list_playlists(self) -> list[dict[str, str]]:
        """
        Get all playlists owned by the authenticated user.

        Returns:
            List of {"id": ..., "name": ...} dicts.
        """
        playlists: list[dict[str, str]] = []
        page_token: str | None = None

        while True:
            params = {"part": "snippet", "mine": "true", "maxResults": 50}
            if page_token:
                params["pageToken"] = page_token
            body = self._request("GET", "playlists", action="list user playlists", params=params)

            for item in body.get("items") or []:
                if isinstance(item, dict) and item.get("id"):
                    playlists.append({
                        "id": item["id"],
                        "name": (item.get("snippet") or {}).get("title", ""),
                    })

            page_token = body.get("nextPageToken")
            if not page_token:
                break

        return playlists

    # =========================================================================
    # Search Operations
    # =========================================================================

    def search_candidates(self, query: str, limit: int = 5) -> list[str]:
        """
        Search music videos and return their ids in relevance order.

        Args:
            query: Free-text query ("title artists album").
            limit: Maximum number of results (1-50).

        Raises:
            CatalogError: Classified failure.
            ResponseFormatError: If the response has no items list.
        """
        body = self._request(
            "GET",
            "search",
            action=f"search for '{query}'",
            params={
                "part": "snippet",
                "q": query,
                "type": "video",
                "videoCategoryId": MUSIC_CATEGORY_ID,
                "maxResults": max(1, min(limit, MAX_IDS_PER_REQUEST)),
            },
        )
        items = body.get("items")
        if not isinstance(items, list):
            raise ResponseFormatError(
                f"YouTube search response for '{query}' has no items",
                service=Service.TARGET.value
            )

        video_ids = []
        for item in items:
            video_id = (item.get("id") or {}).get("videoId") if isinstance(item, dict) else None
            if video_id and video_id not in video_ids:
                video_ids.append(video_id)
        return video_ids

    def fetch_candidate_details(self, video_ids: list[str]) -> list[Candidate]:
        """
        Fetch title, channel and duration for each video id.

        Returns:
            Candidates in the order of video_ids. Ids YouTube no longer
            returns (deleted or private videos) are left out.

        Raises:
            CatalogError: Classified failure.
            ResponseFormatError: If a returned video is malformed.
        """
        by_id: dict[str, Candidate] = {}
        for start in range(0, len(video_ids), MAX_IDS_PER_REQUEST):
            batch = video_ids[start:start + MAX_IDS_PER_REQUEST]
            body = self._request(
                "GET",
                "videos",
                action=f"fetch details of {len(batch)} videos",
                params={"part": "snippet,contentDetails", "id": ",".join(batch)},
            )
            for item in body.get("items") or []:
                candidate = Candidate.from_video_resource(item)
                by_id[candidate.video_id] = candidate

        return [by_id[video_id] for video_id in video_ids if video_id in by_id]
