"""Tests for options and configuration files"""

from pathlib import Path

import pytest

from pipebomb.client import PipeBomb
from pipebomb.core.config import PipeBombConfig, load_config
from pipebomb.core.exceptions import ConfigError


class TestPipeBombConfig:
    """Test option overrides"""

    def test_defaults(self):
        """Defaults match the documented values"""
        config = PipeBombConfig()
        assert config.collection_cache_time == 600
        assert config.track_cache_time == 60
        assert config.playlist_update_frequency == 10
        assert config.include_address_in_ids is False
        assert config.probe_timeout == 3.0

    def test_wire_style_keys(self):
        """camelCase keys are accepted"""
        config = PipeBombConfig.from_options({
            "CollectionCacheTime": 30,
            "trackCacheTime": 5,
            "playlistUpdateFrequency": 2,
            "includeAddressInIds": True,
        })
        assert config == PipeBombConfig(30, 5, 2, True)

    def test_snake_case_keys(self):
        """Field names are accepted as well"""
        assert PipeBombConfig.from_options({"track_cache_time": 1}).track_cache_time == 1

    def test_unknown_key(self):
        """Typos are rejected"""
        with pytest.raises(ConfigError):
            PipeBombConfig.from_options({"trackCacheTim": 1})

    @pytest.mark.parametrize("value", [0, -1, "10", True])
    def test_invalid_numbers(self, value):
        """Numeric options must be positive numbers"""
        with pytest.raises(ConfigError):
            PipeBombConfig.from_options({"playlistUpdateFrequency": value})

    def test_invalid_bool(self):
        """includeAddressInIds must be a boolean"""
        with pytest.raises(ConfigError):
            PipeBombConfig.from_options({"includeAddressInIds": "yes"})

    def test_client_accepts_mapping(self):
        """PipeBomb converts a plain dict of options"""
        client = PipeBomb("music.example.org", config={"trackCacheTime": 7})
        assert client.context.config.track_cache_time == 7


class TestLoadConfig:
    """Test YAML configuration files"""

    def test_full_file(self, tmp_path):
        """Every section is read"""
        key_file = tmp_path / "key"
        key_file.write_text("secret")
        config_file = tmp_path / "pipebomb.yaml"
        config_file.write_text(
            "server:\n"
            "  url: music.example.org\n"
            "  username: alice\n"
            f"  key_file: {key_file}\n"
            "cache:\n"
            "  collection_cache_time: 120\n"
            "playlists:\n"
            "  update_frequency: 5\n"
            "federation:\n"
            "  include_address_in_ids: true\n"
        )

        config = load_config(config_file)

        assert config.server.url == "music.example.org"
        assert config.server.username == "alice"
        assert config.server.key_file == key_file.resolve()
        assert config.options.collection_cache_time == 120
        assert config.options.playlist_update_frequency == 5
        assert config.options.include_address_in_ids is True
        assert config.options.track_cache_time == 60

    def test_missing_file(self, tmp_path):
        """A missing file is a ConfigError"""
        with pytest.raises(ConfigError):
            load_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        """Broken YAML is a ConfigError"""
        config_file = tmp_path / "pipebomb.yaml"
        config_file.write_text("server: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(config_file)

    def test_missing_server_section(self, tmp_path):
        """The server section is required"""
        config_file = tmp_path / "pipebomb.yaml"
        config_file.write_text("cache:\n  track_cache_time: 1\n")
        with pytest.raises(ConfigError):
            load_config(config_file)

    def test_missing_key_file(self, tmp_path):
        """A key_file that does not exist is rejected"""
        config_file = tmp_path / "pipebomb.yaml"
        config_file.write_text(f"server:\n  url: h\n  key_file: {tmp_path / 'missing'}\n")
        with pytest.raises(ConfigError):
            load_config(config_file)

    def test_defaults_to_cwd(self, tmp_path, monkeypatch):
        """Without a path, ./pipebomb.yaml is used"""
        (tmp_path / "pipebomb.yaml").write_text("server:\n  url: music.example.org\n")
        monkeypatch.chdir(tmp_path)
        assert load_config().server.url == "music.example.org"
