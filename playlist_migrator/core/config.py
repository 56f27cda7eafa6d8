"""
Configuration management for playlist-migrator.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - OAuth client credentials for Spotify and YouTube (used for token refresh)
    - Path of the SQLite database holding migration state and tokens
    - Network settings (request timeout, candidate search limit)
    - Directory for log files

The match threshold is NOT part of this file: it lives in the database
config table so it can be changed at runtime through the control surface.

Configuration File Location:
    config.yaml is looked up in the current working directory. Unlike the
    credentials of a download tool, every section is optional: a missing
    file yields the defaults below.

Example config.yaml:
    spotify:
      client_id: "your_spotify_client_id"
      client_secret: "your_spotify_client_secret"

    youtube:
      client_id: "your_google_client_id"
      client_secret: "your_google_client_secret"

    database:
      path: "~/.playlist-migrator/migrator.db"

    network:
      timeout: 15        # seconds, applied to every remote call
      search_limit: 5    # candidates requested per track

    logging:
      directory: "~/.playlist-migrator/logs"
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from playlist_migrator.core.exceptions import ConfigError


# Default configuration file name (always in current working directory)
CONFIG_FILENAME = "config.yaml"

DEFAULT_HOME = "~/.playlist-migrator"
DEFAULT_DATABASE_PATH = f"{DEFAULT_HOME}/migrator.db"
DEFAULT_LOG_DIRECTORY = f"{DEFAULT_HOME}/logs"
DEFAULT_TIMEOUT = 15.0
DEFAULT_SEARCH_LIMIT = 5

# YouTube Data API search.list accepts 0-50 results per page
MAX_SEARCH_LIMIT = 50


@dataclass(frozen=True)
class OAuthClientConfig:
    """
    OAuth client credentials for one service.

    Only needed to refresh expired access tokens. The authorization-code
    handshake that produced the first token pair happens elsewhere.

    Attributes:
        client_id: OAuth application client ID.
        client_secret: OAuth application client secret.
    """
    client_id: str
    client_secret: str


@dataclass(frozen=True)
class NetworkConfig:
    """
    Network behavior configuration.

    Attributes:
        timeout: Seconds before any single remote call is abandoned.
                 Expiry is classified as a transient network error.
        search_limit: Maximum number of target candidates fetched per track.
    """
    timeout: float
    search_limit: int


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable.

    Attributes:
        spotify: Spotify OAuth client, or None if refresh is not configured.
        youtube: Google OAuth client, or None if refresh is not configured.
        database_path: Absolute path of the SQLite database file.
        log_directory: Absolute path of the log directory.
        network: Timeout and search settings.
    """
    spotify: OAuthClientConfig | None
    youtube: OAuthClientConfig | None
    database_path: Path
    log_directory: Path
    network: NetworkConfig


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in current working directory.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If an explicit config_path does not exist, the file has
                     invalid YAML syntax, or contains invalid values.

    Behavior:
        1. Locate config file (explicit path or CWD/config.yaml)
        2. Missing default file -> all defaults
        3. Parse YAML and validate each section
        4. Expand paths and return frozen Config object
    """
    explicit = config_path is not None
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        if explicit:
            raise ConfigError(
                f"Configuration file not found: {config_path}",
                details={"file_path": str(config_path)}
            )
        return _build_config({})

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    # An empty file parses to None
    if raw_config is None:
        raw_config = {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return _build_config(raw_config)


def _build_config(raw_config: dict[str, Any]) -> Config:
    for section in ("spotify", "youtube", "database", "network", "logging"):
        value = raw_config.get(section)
        if value is not None and not isinstance(value, dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )

    database_section = raw_config.get("database") or {}
    logging_section = raw_config.get("logging") or {}

    return Config(
        spotify=_parse_oauth_client(raw_config.get("spotify"), "spotify"),
        youtube=_parse_oauth_client(raw_config.get("youtube"), "youtube"),
        database_path=_parse_path(
            database_section.get("path", DEFAULT_DATABASE_PATH), "database.path"
        ),
        log_directory=_parse_path(
            logging_section.get("directory", DEFAULT_LOG_DIRECTORY), "logging.directory"
        ),
        network=_parse_network_config(raw_config.get("network")),
    )


def _parse_oauth_client(section: dict[str, Any] | None, name: str) -> OAuthClientConfig | None:
    """
    Parse an OAuth client section.

    Returns None when the section is absent. When present, both fields
    must be non-empty strings.
    """
    if section is None:
        return None

    client_id = section.get("client_id", "")
    client_secret = section.get("client_secret", "")

    for field_name, value in (("client_id", client_id), ("client_secret", client_secret)):
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(
                f"'{name}.{field_name}' must be a non-empty string",
                details={"field": f"{name}.{field_name}"}
            )

    return OAuthClientConfig(
        client_id=client_id.strip(),
        client_secret=client_secret.strip()
    )


def _parse_path(raw: Any, field_name: str) -> Path:
    if not isinstance(raw, str) or not raw.strip():
        raise ConfigError(
            f"'{field_name}' must be a non-empty string",
            details={"field": field_name}
        )
    # Expand ~ and make absolute
    return Path(raw.strip()).expanduser().resolve()


def _parse_network_config(section: dict[str, Any] | None) -> NetworkConfig:
    """
    Parse and validate the network configuration section.

    Applies defaults if the section is missing or fields are not specified.

    Raises:
        ConfigError: If timeout is not a positive number, or search_limit
                     is not an integer between 1 and MAX_SEARCH_LIMIT.
    """
    timeout = DEFAULT_TIMEOUT
    search_limit = DEFAULT_SEARCH_LIMIT

    if section is not None:
        raw_timeout = section.get("timeout")
        if raw_timeout is not None:
            if isinstance(raw_timeout, bool) or not isinstance(raw_timeout, (int, float)) or raw_timeout <= 0:
                raise ConfigError(
                    "'network.timeout' must be a positive number",
                    details={"field": "network.timeout", "value": raw_timeout}
                )
            timeout = float(raw_timeout)

        raw_limit = section.get("search_limit")
        if raw_limit is not None:
            if (
                isinstance(raw_limit, bool)
                or not isinstance(raw_limit, int)
                or not 1 <= raw_limit <= MAX_SEARCH_LIMIT
            ):
                raise ConfigError(
                    f"'network.search_limit' must be an integer between 1 and {MAX_SEARCH_LIMIT}",
                    details={"field": "network.search_limit", "value": raw_limit}
                )
            search_limit = raw_limit

    return NetworkConfig(timeout=timeout, search_limit=search_limit)
