"""
OAuth refresh-token exchange for playlist-migrator.

This module is the client side of the external Auth Service: it exchanges
a stored refresh token for a new access token at the token endpoint of the
service's OAuth provider. The authorization-code handshake that produced
the first token pair is not handled here.

Token endpoints:
    source (Spotify): https://accounts.spotify.com/api/token
    target (YouTube): https://oauth2.googleapis.com/token

Both endpoints accept the same form-encoded refresh request:

    grant_type=refresh_token
    refresh_token=...
    client_id=...
    client_secret=...

and answer with {"access_token": ..., "expires_in": seconds} plus an
optional rotated "refresh_token".
"""

from dataclasses import dataclass

import requests

from playlist_migrator.core.config import Config, OAuthClientConfig
from playlist_migrator.core.exceptions import RefreshFailedError
from playlist_migrator.core.logger import get_logger
from playlist_migrator.core.models import Service

logger = get_logger(__name__)


SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

# Used when the provider omits expires_in (both document one hour)
DEFAULT_EXPIRES_IN_SECONDS = 3600


@dataclass(frozen=True)
class OAuthEndpoint:
    """Token endpoint plus the client credentials registered with it."""
    token_url: str
    client: OAuthClientConfig


@dataclass(frozen=True)
class RefreshedToken:
    """
    Result of a successful refresh exchange.

    Attributes:
        access_token: The new access token.
        expires_in: Lifetime of the new token in seconds.
        refresh_token: Rotated refresh token, or None if the provider kept the old one.
    """
    access_token: str
    expires_in: int
    refresh_token: str | None = None


class OAuthRefresher:
    """
    Performs refresh-token exchanges for the configured services.

    Attributes:
        _endpoints: Token endpoint per service role.
        _timeout: Seconds before the token request is abandoned.
        _session: requests session used for all exchanges.

    Example:
        refresher = OAuthRefresher.from_config(config)
        token = refresher.refresh(Service.SOURCE, stored.refresh_token)
    """

    def __init__(
        self,
        endpoints: dict[Service, OAuthEndpoint],
        timeout: float = 15.0,
        session: requests.Session | None = None
    ) -> None:
        self._endpoints = dict(endpoints)
        self._timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_config(cls, config: Config) -> "OAuthRefresher":
        """Build a refresher for every service that has OAuth client credentials."""
        endpoints: dict[Service, OAuthEndpoint] = {}
        if config.spotify is not None:
            endpoints[Service.SOURCE] = OAuthEndpoint(SPOTIFY_TOKEN_URL, config.spotify)
        if config.youtube is not None:
            endpoints[Service.TARGET] = OAuthEndpoint(GOOGLE_TOKEN_URL, config.youtube)
        return cls(endpoints, timeout=config.network.timeout)

    def refresh(self, service: Service, refresh_token: str | None) -> RefreshedToken:
        """
        Exchange a refresh token for a new access token.

        Args:
            service: Service role whose token expired.
            refresh_token: The stored refresh token.

        Returns:
            RefreshedToken with the new access token and its lifetime.

        Raises:
            RefreshFailedError: If no refresh token is stored, the service has
                                no OAuth client configured, the request fails,
                                or the response has no access token.
        """
        service = Service(service)

        if not refresh_token:
            raise RefreshFailedError(
                service.value,
                f"No {service.value} refresh token stored; re-authenticate the {service.value} service"
            )

        endpoint = self._endpoints.get(service)
        if endpoint is None:
            raise RefreshFailedError(
                service.value,
                f"No OAuth client configured for the {service.value} service; "
                f"add client_id/client_secret to config.yaml",
            )

        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": endpoint.client.client_id,
            "client_secret": endpoint.client.client_secret,
        }

        logger.info(f"{service.value.capitalize()} token expired, attempting to refresh...")

        try:
            response = self._session.post(
                endpoint.token_url,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise RefreshFailedError(
                service.value,
                f"Failed to refresh {service.value} token: {e}",
                details={"original_error": str(e)}
            ) from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if not response.ok:
            reason = body.get("error_description") or body.get("error") or response.reason
            raise RefreshFailedError(
                service.value,
                f"Failed to refresh {service.value} token: {reason}",
                details={"http_status": response.status_code, "error": body.get("error")}
            )

        access_token = body.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise RefreshFailedError(
                service.value,
                f"Failed to refresh {service.value} token: response has no access_token",
                details={"http_status": response.status_code}
            )

        expires_in = body.get("expires_in", DEFAULT_EXPIRES_IN_SECONDS)
        try:
            expires_in = int(expires_in)
        except (TypeError, ValueError):
            expires_in = DEFAULT_EXPIRES_IN_SECONDS

        logger.info(f"{service.value.capitalize()} token refreshed.")
        return RefreshedToken(
            access_token=access_token,
            expires_in=expires_in,
            refresh_token=body.get("refresh_token") or None,
        )
