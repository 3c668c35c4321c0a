"""
Top-level client.

PipeBomb wires one Context to its track cache, collection cache and V1
endpoints. It also acts as the factory for federated peers: when the
context resolves an identifier owned by another server, it asks this
client to build a PipeBomb for that server.

Usage:
    async with PipeBomb("music.example.org") as client:
        await client.authenticate("alice", KeyAuthenticator.from_file(key_path))
        playlist = await client.v1.get_playlist("7")
        playlist.register_update_callback(lambda p: print(p.get_name()))
"""

import dataclasses
from typing import Any, Mapping

from pipebomb.api.v1 import V1
from pipebomb.collection.collection_cache import CollectionCache
from pipebomb.core.config import PipeBombConfig
from pipebomb.core.logger import get_logger
from pipebomb.federation import host_info
from pipebomb.federation.host_info import HostInfo
from pipebomb.music.track_cache import TrackCache
from pipebomb.net.context import Context


logger = get_logger(__name__)


class PipeBomb:
    """
    Client for one pipebomb server and, through it, its federation.

    Attributes:
        context: Connection state for the server.
        track_cache: Live Track objects fetched through this client.
        collection_cache: Live collections fetched through this client.
        v1: Version 1 endpoints.
    """

    def __init__(
        self,
        server_url: str,
        token: str | None = None,
        config: PipeBombConfig | Mapping[str, Any] | None = None,
        authenticator: Any = None
    ) -> None:
        if config is not None and not isinstance(config, PipeBombConfig):
            config = PipeBombConfig.from_options(config)
        self.context = Context(server_url, token, config, peer_factory=self._create_peer)
        self.context.authenticator = authenticator
        self.track_cache = TrackCache(self.context)
        self.collection_cache = CollectionCache(self.context, self.track_cache)
        self.v1 = V1(self.context, self.track_cache, self.collection_cache)

    def __repr__(self) -> str:
        return f"PipeBomb({self.context.server_url!r})"

    async def __aenter__(self) -> "PipeBomb":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def authenticate(self, username: str, authenticator: Any, create_if_missing: bool = False) -> str:
        """
        Log in and keep the token for every later request.

        Raises:
            AuthenticationError: If the server refuses the handshake.
        """
        return await authenticator.authenticate(self.context, username, create_if_missing)

    async def _create_peer(self, info: HostInfo) -> "PipeBomb":
        # Peers always emit composite IDs so their objects stay addressable here
        config = dataclasses.replace(self.context.config, include_address_in_ids=True)
        peer = PipeBomb(info.url, config=config)

        if self.context.is_authenticated and self.context.authenticator is not None:
            try:
                await peer.authenticate(self.context.username, self.context.authenticator, create_if_missing=True)
            except BaseException:
                await peer.close()
                raise

        logger.info(f"Connected to peer {info.name} ({info.url})")
        return peer

    @staticmethod
    async def check_host(server_url: str, timeout: float = host_info.DEFAULT_PROBE_TIMEOUT) -> HostInfo | None:
        """Probe a host; see pipebomb.federation.host_info.check_host."""
        return await host_info.check_host(server_url, timeout)

    async def set_server_url(self, server_url: str) -> None:
        """Point the client at another server. Cached objects are dropped."""
        await self.context.set_server_url(server_url)
        self.collection_cache.clear()
        self.track_cache.clear()

    async def close(self) -> None:
        """Close the HTTP session and every peer client."""
        await self.context.close()
