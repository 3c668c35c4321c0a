"""
Configuration management for pipebomb.

This module handles the two ways a client can be configured:

    1. In code, by passing an options mapping to PipeBomb(...). The mapping
       uses the same keys as the server-side client options
       (CollectionCacheTime, trackCacheTime, playlistUpdateFrequency,
       includeAddressInIds). Every key is a plain override of a default.
    2. From a YAML file, used by the command line interface.

Example config.yaml:
    server:
      url: "https://music.example.org"
      username: "alice"
      key_file: "~/.config/pipebomb/alice.key"

    cache:
      collection_cache_time: 600
      track_cache_time: 60

    playlists:
      update_frequency: 10

    federation:
      include_address_in_ids: false
      probe_timeout: 3.0
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from pipebomb.core.exceptions import ConfigError


# Default configuration file name (looked up in the current working directory)
CONFIG_FILENAME = "pipebomb.yaml"

# Wire-style option names mapped to dataclass field names
_OPTION_ALIASES = {
    "CollectionCacheTime": "collection_cache_time",
    "collectionCacheTime": "collection_cache_time",
    "trackCacheTime": "track_cache_time",
    "playlistUpdateFrequency": "playlist_update_frequency",
    "includeAddressInIds": "include_address_in_ids",
    "probeTimeout": "probe_timeout",
}

_NUMERIC_OPTIONS = (
    "collection_cache_time",
    "track_cache_time",
    "playlist_update_frequency",
    "probe_timeout",
)


@dataclass(frozen=True)
class PipeBombConfig:
    """
    Options accepted by the resolver and cache layer.

    Attributes:
        collection_cache_time: Seconds a playlist/track list stays cached after
                               its last access. Default: 600.
        track_cache_time: Seconds a track stays cached after its last access.
                          Default: 60.
        playlist_update_frequency: Seconds between background refreshes of a
                                   playlist that has subscribers. Default: 10.
        include_address_in_ids: If True, every identifier produced by this
                                client is emitted in composite form
                                "<host>@<id>". Always forced on for peers.
        probe_timeout: Upper bound in seconds for a federation identification
                       probe. Default: 3.0.
    """
    collection_cache_time: float = 600
    track_cache_time: float = 60
    playlist_update_frequency: float = 10
    include_address_in_ids: bool = False
    probe_timeout: float = 3.0

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None) -> "PipeBombConfig":
        """
        Build a config from an options mapping, applying defaults.

        Unknown keys are rejected so that a typo does not silently fall back
        to a default.

        Raises:
            ConfigError: If a key is unknown or a value has the wrong type.
        """
        if not options:
            return cls()

        values: dict[str, Any] = {}
        known = set(cls.__dataclass_fields__)
        for key, value in options.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ConfigError(
                    f"Unknown option: '{key}'",
                    details={"field": key}
                )
            values[name] = value

        for name in _NUMERIC_OPTIONS:
            if name in values:
                value = values[name]
                if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                    raise ConfigError(
                        f"'{name}' must be a positive number",
                        details={"field": name, "value": value}
                    )

        if "include_address_in_ids" in values and not isinstance(values["include_address_in_ids"], bool):
            raise ConfigError(
                "'include_address_in_ids' must be a boolean",
                details={"field": "include_address_in_ids", "value": values["include_address_in_ids"]}
            )

        return cls(**values)


@dataclass(frozen=True)
class ServerConfig:
    """
    Connection settings for the home server.

    Attributes:
        url: Base URL of the server, with or without scheme.
        username: Account to authenticate as. None for anonymous access.
        key_file: Path to the private key used by the login handshake.
    """
    url: str
    username: str | None = None
    key_file: Path | None = None


@dataclass(frozen=True)
class ClientConfig:
    """
    Complete command line configuration.

    Attributes:
        server: Home server connection settings.
        options: Cache, refresh and federation options.
    """
    server: ServerConfig
    options: PipeBombConfig = field(default_factory=PipeBombConfig)


def load_config(config_path: Path | None = None) -> ClientConfig:
    """
    Load and validate configuration from a YAML file.

    Args:
        config_path: Optional explicit path to the config file.
                     If None, looks for pipebomb.yaml in the current directory.

    Returns:
        ClientConfig: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If the file is missing, is not valid YAML, lacks the
                     server section or contains invalid values.
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except IOError as e:
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

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    _validate_config(raw_config)

    return ClientConfig(
        server=_parse_server_config(raw_config["server"]),
        options=_parse_options(raw_config)
    )


def _validate_config(raw_config: dict[str, Any]) -> None:
    """Check that required sections exist and every section is a mapping."""
    if "server" not in raw_config:
        raise ConfigError(
            "Missing required section: 'server'",
            details={"missing_section": "server"}
        )

    for section in ("server", "cache", "playlists", "federation"):
        if section in raw_config and not isinstance(raw_config[section], dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )


def _parse_server_config(server_section: dict[str, Any]) -> ServerConfig:
    url = server_section.get("url", "")
    if not isinstance(url, str) or not url.strip():
        raise ConfigError(
            "'server.url' must be a non-empty string",
            details={"field": "server.url"}
        )

    username = server_section.get("username")
    if username is not None and (not isinstance(username, str) or not username.strip()):
        raise ConfigError(
            "'server.username' must be a non-empty string or null",
            details={"field": "server.username"}
        )

    key_file = None
    raw_key = server_section.get("key_file")
    if raw_key is not None:
        if not isinstance(raw_key, str):
            raise ConfigError(
                "'server.key_file' must be a string path or null",
                details={"field": "server.key_file"}
            )
        key_file = Path(raw_key).expanduser().resolve()
        if not key_file.exists():
            raise ConfigError(
                f"Key file not found: {key_file}",
                details={"field": "server.key_file", "path": str(key_file)}
            )

    return ServerConfig(
        url=url.strip(),
        username=username.strip() if username else None,
        key_file=key_file
    )


def _parse_options(raw_config: dict[str, Any]) -> PipeBombConfig:
    """Flatten the cache/playlists/federation sections into PipeBombConfig."""
    cache = raw_config.get("cache") or {}
    playlists = raw_config.get("playlists") or {}
    federation = raw_config.get("federation") or {}

    options: dict[str, Any] = {}
    for key in ("collection_cache_time", "track_cache_time"):
        if key in cache:
            options[key] = cache[key]
    if "update_frequency" in playlists:
        options["playlist_update_frequency"] = playlists["update_frequency"]
    for key in ("include_address_in_ids", "probe_timeout"):
        if key in federation:
            options[key] = federation[key]

    return PipeBombConfig.from_options(options)
