"""Tests for configuration loading"""

import pytest
from pathlib import Path

from playlist_migrator.core.config import (
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_TIMEOUT,
    load_config,
)
from playlist_migrator.core.exceptions import ConfigError


def _write(tmp_path, content):
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadConfig:
    """Tests for load_config()"""

    def test_defaults_without_file(self, tmp_path, monkeypatch):
        """Should return defaults when config.yaml is missing in the CWD"""
        monkeypatch.chdir(tmp_path)

        config = load_config()

        assert config.spotify is None
        assert config.youtube is None
        assert config.network.timeout == DEFAULT_TIMEOUT
        assert config.network.search_limit == DEFAULT_SEARCH_LIMIT
        assert config.database_path.name == "migrator.db"
        assert config.database_path.is_absolute()

    def test_explicit_missing_file(self, tmp_path):
        """Should raise ConfigError for an explicit path that does not exist"""
        with pytest.raises(ConfigError):
            load_config(tmp_path / "missing.yaml")

    def test_empty_file(self, tmp_path):
        """Should treat an empty file as all defaults"""
        config = load_config(_write(tmp_path, ""))
        assert config.network.search_limit == DEFAULT_SEARCH_LIMIT

    def test_full_file(self, tmp_path):
        """Should parse every section"""
        path = _write(tmp_path, (
            "spotify:\n"
            "  client_id: \" sp-id \"\n"
            "  client_secret: sp-secret\n"
            "youtube:\n"
            "  client_id: yt-id\n"
            "  client_secret: yt-secret\n"
            "database:\n"
            f"  path: \"{(tmp_path / 'state.db').as_posix()}\"\n"
            "network:\n"
            "  timeout: 5\n"
            "  search_limit: 10\n"
        ))

        config = load_config(path)

        assert config.spotify.client_id == "sp-id"
        assert config.youtube.client_secret == "yt-secret"
        assert config.database_path == (tmp_path / "state.db").resolve()
        assert config.network.timeout == 5.0
        assert config.network.search_limit == 10

    def test_invalid_yaml(self, tmp_path):
        """Should raise ConfigError on a YAML syntax error"""
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, "spotify: [unclosed\n"))

    def test_not_a_dictionary(self, tmp_path):
        """Should reject a file that is not a mapping"""
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, "- one\n- two\n"))

    def test_section_not_a_dictionary(self, tmp_path):
        """Should reject a section that is not a mapping"""
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, "network: fast\n"))

    def test_incomplete_oauth_client(self, tmp_path):
        """Should reject an OAuth section without a secret"""
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, "spotify:\n  client_id: abc\n"))

    @pytest.mark.parametrize("value", ["0", "-1", "true", "slow"])
    def test_invalid_timeout(self, tmp_path, value):
        """Should reject a timeout that is not a positive number"""
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, f"network:\n  timeout: {value}\n"))

    @pytest.mark.parametrize("value", ["0", "51", "2.5", "many"])
    def test_invalid_search_limit(self, tmp_path, value):
        """Should reject a search limit outside 1-50"""
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, f"network:\n  search_limit: {value}\n"))

    def test_home_expanded(self, tmp_path):
        """Should expand ~ in paths"""
        config = load_config(_write(tmp_path, "logging:\n  directory: \"~/migrator-logs\"\n"))
        assert config.log_directory == (Path.home() / "migrator-logs").resolve()
