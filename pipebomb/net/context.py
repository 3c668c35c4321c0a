"""
Per-server request context and federation resolver.

A Context is everything needed to talk to one server: its URL, the
credentials, the options, the HTTP session, and the registry of peer
clients reached through it. Every entity (track, playlist, ...) keeps a
reference to the Context it was fetched through, so requests about it
always go to the server that owns it.

Identifiers:
    An identifier is either a plain local ID ("42") or a composite
    "<host>@<id>" ("music.example.org@42"). A composite identifier whose
    host is this context's own address is local. With
    include_address_in_ids enabled, the context emits composite IDs for
    everything it produces so they remain unambiguous when shared.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import aiohttp

from pipebomb.core.config import PipeBombConfig
from pipebomb.core.exceptions import FederationError
from pipebomb.core.logger import get_logger
from pipebomb.federation.host_info import HostInfo, strip_scheme
from pipebomb.federation.peers import PeerRegistry
from pipebomb.net.request import Request
from pipebomb.net.response import Response


logger = get_logger(__name__)

ID_SEPARATOR = "@"


@dataclass(frozen=True)
class Resolution:
    """
    Outcome of resolving an identifier.

    Attributes:
        local: True if the identifier belongs to this context's server.
        id: The identifier in the owning server's local form.
        peer: Client for the owning peer. None for local identifiers and for
              peers that could not be reached.
        host: Address of the owning peer (None for local identifiers).
    """
    local: bool
    id: str
    peer: Any = None
    host: str | None = None

    @property
    def reachable(self) -> bool:
        return self.local or self.peer is not None


def split_id(identifier: str) -> tuple[str | None, str]:
    """Split "<host>@<id>" on the first separator; plain IDs have no host."""
    if ID_SEPARATOR not in identifier:
        return None, identifier
    host, local_id = identifier.split(ID_SEPARATOR, 1)
    return host, local_id


class Context:
    """
    Connection state for one server.

    Attributes:
        server_url: Base URL including scheme, without trailing slash.
        address: server_url without scheme; the host part of composite IDs.
        token: Authorization token, or None when anonymous.
        username: Account the token belongs to, once authenticated.
        authenticator: Credentials used to log in, reused for peers.
        config: Cache, refresh and federation options.
        peers: Registry of peer clients reached through this context.
    """

    def __init__(
        self,
        server_url: str,
        token: str | None = None,
        config: PipeBombConfig | None = None,
        peer_factory: Callable[[HostInfo], Awaitable[Any]] | None = None
    ) -> None:
        self.config = config or PipeBombConfig()
        self.token = token
        self.username: str | None = None
        self.authenticator: Any = None
        self._session: aiohttp.ClientSession | None = None
        self._peer_factory = peer_factory
        self._set_url(server_url)
        self.peers = PeerRegistry(self._create_peer, self.config.probe_timeout)

    def _set_url(self, server_url: str) -> None:
        server_url = server_url.rstrip("/")
        if "://" not in server_url:
            server_url = f"https://{server_url}"
        self.server_url = server_url
        self.address = strip_scheme(server_url)

    @property
    def playlist_update_frequency(self) -> float:
        return self.config.playlist_update_frequency

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None and self.username is not None

    # =========================================================================
    # HTTP
    # =========================================================================

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def make_request(self, method: str, endpoint: str, body: Any = None) -> Response:
        """
        Send one request to this context's server.

        Args:
            method: HTTP verb, any case.
            endpoint: Path relative to the server root, e.g. "v1/playlists/7".
            body: JSON body for verbs that carry one.

        Returns:
            Response: Always a Response; transport failures included.
        """
        url = f"{self.server_url}/{endpoint}"
        response = await Request(self._get_session(), method, url, self.token, body).send()
        logger.debug(f"{method.upper()} {url} -> {response.status_code} {response.status_message}")
        return response

    async def close(self) -> None:
        """Close the HTTP session and every peer client."""
        await self.peers.clear()
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    # =========================================================================
    # Identifiers
    # =========================================================================

    def qualify_id(self, local_id: str) -> str:
        """
        Return the identifier this context emits for a local ID.

        With include_address_in_ids, plain IDs gain the "<address>@" prefix;
        otherwise IDs are returned unchanged.
        """
        local_id = str(local_id)
        if not self.config.include_address_in_ids or ID_SEPARATOR in local_id:
            return local_id
        return f"{self.address}{ID_SEPARATOR}{local_id}"

    def to_local_id(self, identifier: str) -> str:
        """Strip this context's own address prefix, if present."""
        host, local_id = split_id(str(identifier))
        if host == self.address:
            return local_id
        return str(identifier)

    def is_local_id(self, identifier: str) -> bool:
        host, _ = split_id(str(identifier))
        return host is None or host == self.address

    # =========================================================================
    # Federation
    # =========================================================================

    async def resolve(self, identifier: str) -> Resolution:
        """
        Decide which server owns an identifier.

        Steps:
            1. No separator: local.
            2. Host equal to this context's address: local.
            3. Host with a cached peer: that peer.
            4. Otherwise probe the host (HTTPS, then HTTP) and, on success,
               provision, authenticate and cache a peer client.
            5. Probe failure: non-local with peer None ("server offline").

        Raises:
            AuthenticationError: If the peer refused to authenticate the
                                 current user.
        """
        host, local_id = split_id(str(identifier))
        if host is None or host == self.address:
            return Resolution(local=True, id=local_id)

        peer = await self.peers.acquire(host)
        return Resolution(local=False, id=local_id, peer=peer, host=host)

    async def _create_peer(self, info: HostInfo) -> Any:
        if self._peer_factory is None:
            raise FederationError(
                "This context cannot create peer clients",
                details={"host": info.address}
            )
        return await self._peer_factory(info)

    async def set_server_url(self, server_url: str) -> None:
        """
        Point this context at another server.

        Every peer client belongs to the old host's federation and is
        closed and dropped.
        """
        await self.peers.clear()
        self._set_url(server_url)
        logger.info(f"Server changed to {self.server_url}")
