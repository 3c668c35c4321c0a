"""
pipebomb: asynchronous client for federated pipebomb music servers.

The client resolves identifiers that may belong to the home server or to
a federated peer, keeps one live object per track and collection ID in
sliding-expiry caches, and keeps subscribed playlists up to date with a
background refresh loop.

Modules:
    core/        - Configuration, logging, exceptions
    net/         - Transport, normalized responses, per-server context, login
    federation/  - Peer identification, latency, peer registry
    cache/       - Generic sliding-expiry object cache
    music/       - Tracks and the track cache
    collection/  - Playlists, charts, external collections, suggestions
    api/         - Versioned endpoint surfaces
    client.py    - PipeBomb, the top-level client
    cli.py       - Command-line interface

Usage:
    Command Line:
        pipebomb identify music.example.org
        pipebomb --server music.example.org playlist 7
        pipebomb watch 7

    Python API:
        from pipebomb import PipeBomb, KeyAuthenticator

        async with PipeBomb("music.example.org") as client:
            await client.authenticate("alice", KeyAuthenticator.from_file(key_path))
            playlist = await client.v1.get_playlist("friend.example.org@12")
            playlist.register_update_callback(on_change)

Configuration:
    The CLI reads pipebomb.yaml from the current directory:

        server:
          url: "music.example.org"
          username: "alice"
          key_file: "~/.pipebomb/key"

        cache:
          collection_cache_time: 600
          track_cache_time: 60

        playlists:
          update_frequency: 10

        federation:
          include_address_in_ids: false
          probe_timeout: 3.0

Dependencies:
    - aiohttp: HTTP transport
    - pyyaml: Configuration file parsing
    - click, rich-click: CLI framework and colors
    - tqdm: Progress bars and progress-safe logging
"""

__version__ = "0.1.0"
__author__ = "pipebomb"
__license__ = "MIT"

from pipebomb.client import PipeBomb
from pipebomb.collection import ExternalCollection, Playlist, Suggestions, TrackList
from pipebomb.core import (
    AuthenticationError,
    CollectionDeletedError,
    ConfigError,
    PipeBombConfig,
    PipeBombError,
    ResponseError,
    ServerOfflineError,
    get_logger,
    load_config,
    setup_logging,
)
from pipebomb.music import Track
from pipebomb.net import KeyAuthenticator, Response

__all__ = [
    # Version
    "__version__",
    # Client
    "PipeBomb",
    "KeyAuthenticator",
    "Response",
    # Core
    "PipeBombConfig",
    "load_config",
    "setup_logging",
    "get_logger",
    # Exceptions
    "PipeBombError",
    "ConfigError",
    "ResponseError",
    "CollectionDeletedError",
    "ServerOfflineError",
    "AuthenticationError",
    # Models
    "Track",
    "Playlist",
    "TrackList",
    "ExternalCollection",
    "Suggestions",
]
