"""
Authentication module for playlist-migrator.

Components:
    - Bearer / HeaderBundle: Credential variants consumed by catalog clients
    - OAuthRefresher: Refresh-token exchange against the OAuth providers
    - TokenProvider: Resolves stored tokens into valid credentials

Usage:
    from playlist_migrator.auth import OAuthRefresher, TokenProvider

    provider = TokenProvider(database, OAuthRefresher.from_config(config))
    credentials = provider.get_credentials(Service.TARGET)
    headers = credentials.as_headers()
"""

from playlist_migrator.auth.credentials import Bearer, Credentials, HeaderBundle
from playlist_migrator.auth.oauth import OAuthEndpoint, OAuthRefresher, RefreshedToken
from playlist_migrator.auth.provider import AuthStatus, TokenProvider, parse_session_headers

__all__ = [
    "Bearer",
    "HeaderBundle",
    "Credentials",
    "OAuthEndpoint",
    "OAuthRefresher",
    "RefreshedToken",
    "AuthStatus",
    "TokenProvider",
    "parse_session_headers",
]
