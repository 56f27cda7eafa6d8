"""
Token Provider for playlist-migrator.

The Token Provider is the only component that reads the tokens table. It
turns a stored TokenRecord into ready-to-use Credentials, refreshing
expired OAuth tokens on the way:

    no stored token            -> AuthenticationRequiredError
    oauth, now < expires_at    -> Bearer(access_token)
    oauth, now >= expires_at   -> refresh exchange, persist, Bearer(new token)
    oauth, refresh fails       -> RefreshFailedError
    session                    -> HeaderBundle(stored headers), verbatim

It also owns the write side used by the CLI: storing captured session
headers, importing OAuth tokens and clearing a service.
"""

import json
import threading
from dataclasses import dataclass
from typing import Callable

from playlist_migrator.auth.credentials import Bearer, Credentials, HeaderBundle
from playlist_migrator.auth.oauth import OAuthRefresher
from playlist_migrator.core.database import Database, now_ms
from playlist_migrator.core.exceptions import (
    AuthenticationRequiredError,
    RefreshFailedError,
    ValidationError,
)
from playlist_migrator.core.logger import get_logger
from playlist_migrator.core.models import AuthType, Service, TokenRecord

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuthStatus:
    """
    Connection state of one service, for display.

    Attributes:
        service: Service role.
        connected: True if credentials are stored and readable.
        auth_type: Stored auth type, None when disconnected.
        expires_at: OAuth expiry in epoch milliseconds, if tracked.
    """
    service: Service
    connected: bool
    auth_type: AuthType | None = None
    expires_at: int | None = None


def parse_session_headers(raw: str) -> dict[str, str]:
    """
    Parse and validate a captured session header bundle.

    Args:
        raw: JSON object mapping header names to values, as copied from the
             browser's network inspector.

    Returns:
        The header dictionary.

    Raises:
        ValidationError: If raw is not a JSON object of string values or
                         has no cookie header.
    """
    try:
        headers = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ValidationError(
            "The session headers must be a valid JSON string.",
            details={"original_error": str(e)}
        ) from e

    if not isinstance(headers, dict) or not headers:
        raise ValidationError("The session headers must be a non-empty JSON object.")

    for key, value in headers.items():
        if not isinstance(value, str):
            raise ValidationError(
                f"Session header '{key}' must have a string value.",
                details={"header": key}
            )

    if not any(key.lower() == "cookie" for key in headers):
        raise ValidationError(
            "The 'cookie' header is missing from the provided session headers.",
            details={"received_keys": sorted(headers)}
        )

    return headers


class TokenProvider:
    """
    Supplies valid per-service credentials.

    Attributes:
        _store: Token store (the Database).
        _refresher: Auth Service client used for OAuth refresh, or None
                    if refresh is not configured.
        _clock: Returns current epoch milliseconds; injectable for tests.

    Thread Safety:
        get_credentials() serializes refreshes with an internal lock, so two
        concurrent migrations never spend the same refresh token twice.
    """

    def __init__(
        self,
        store: Database,
        refresher: OAuthRefresher | None = None,
        clock: Callable[[], int] = now_ms
    ) -> None:
        self._store = store
        self._refresher = refresher
        self._clock = clock
        self._refresh_lock = threading.Lock()

    def get_credentials(self, service: Service) -> Credentials:
        """
        Resolve credentials for a service.

        Args:
            service: Service role ("source" or "target").

        Returns:
            Bearer for oauth tokens, HeaderBundle for session headers.

        Raises:
            AuthenticationRequiredError: If nothing is stored for the service.
            RefreshFailedError: If an expired OAuth token cannot be refreshed.
            ValidationError: If stored session headers are not valid JSON.
        """
        service = Service(service)
        record = self._store.get_token(service)

        if record is None or not record.access_token:
            raise AuthenticationRequiredError(service.value)

        if record.auth_type == AuthType.SESSION:
            return HeaderBundle(self._decode_session(record))

        if record.expires_at is not None and self._clock() >= record.expires_at:
            return Bearer(self._refresh(service))

        return Bearer(record.access_token)

    def _decode_session(self, record: TokenRecord) -> dict[str, str]:
        try:
            headers = json.loads(record.access_token)
        except ValueError as e:
            raise ValidationError(
                f"Invalid {record.service.value} session header format; "
                f"capture the session headers again",
                details={"service": record.service.value}
            ) from e
        if not isinstance(headers, dict):
            raise ValidationError(
                f"Invalid {record.service.value} session header format; "
                f"capture the session headers again",
                details={"service": record.service.value}
            )
        return headers

    def _refresh(self, service: Service) -> str:
        with self._refresh_lock:
            # Another thread may have refreshed while we waited
            record = self._store.get_token(service)
            if record is None:
                raise AuthenticationRequiredError(service.value)
            if record.expires_at is None or self._clock() < record.expires_at:
                return record.access_token

            if self._refresher is None:
                raise RefreshFailedError(
                    service.value,
                    f"{service.value.capitalize()} token expired and no OAuth client is configured"
                )

            refreshed = self._refresher.refresh(service, record.refresh_token)
            expires_at = self._clock() + refreshed.expires_in * 1000
            self._store.update_access_token(
                service,
                refreshed.access_token,
                expires_at,
                refresh_token=refreshed.refresh_token,
            )
            return refreshed.access_token

    # =========================================================================
    # Write side
    # =========================================================================

    def store_session_headers(self, service: Service, raw_headers: str) -> HeaderBundle:
        """
        Validate and store a captured session header bundle.

        The raw input is kept in raw_value for diagnostics.

        Raises:
            ValidationError: If the headers are malformed. Nothing is stored.
        """
        service = Service(service)
        headers = parse_session_headers(raw_headers)
        self._store.save_token(TokenRecord(
            service=service,
            access_token=json.dumps(headers),
            auth_type=AuthType.SESSION,
            raw_value=raw_headers,
        ))
        logger.info(f"Stored session headers for the {service.value} service")
        return HeaderBundle(headers)

    def store_oauth_tokens(
        self,
        service: Service,
        access_token: str,
        refresh_token: str | None = None,
        expires_in: int | None = None
    ) -> TokenRecord:
        """
        Store an OAuth token pair obtained from an external handshake.

        Args:
            service: Service role.
            access_token: The access token.
            refresh_token: Optional refresh token.
            expires_in: Optional token lifetime in seconds.

        Raises:
            ValidationError: If access_token is empty or expires_in is negative.
        """
        service = Service(service)
        if not access_token or not access_token.strip():
            raise ValidationError("The access token must be a non-empty string.")
        if expires_in is not None and expires_in < 0:
            raise ValidationError(
                "expires_in must not be negative.", details={"expires_in": expires_in}
            )

        record = TokenRecord(
            service=service,
            access_token=access_token.strip(),
            auth_type=AuthType.OAUTH,
            refresh_token=refresh_token or None,
            expires_at=self._clock() + expires_in * 1000 if expires_in is not None else None,
        )
        self._store.save_token(record)
        logger.info(f"Stored OAuth token for the {service.value} service")
        return record

    def clear(self, service: Service) -> bool:
        """Delete stored credentials. Returns True if something was deleted."""
        return self._store.delete_token(Service(service))

    def status(self, service: Service) -> AuthStatus:
        service = Service(service)
        record = self._store.get_token(service)
        if record is None or not record.access_token:
            return AuthStatus(service=service, connected=False)

        connected = True
        if record.auth_type == AuthType.SESSION:
            try:
                self._decode_session(record)
            except ValidationError:
                connected = False

        return AuthStatus(
            service=service,
            connected=connected,
            auth_type=record.auth_type,
            expires_at=record.expires_at,
        )
