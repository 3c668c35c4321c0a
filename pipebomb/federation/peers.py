"""
Peer client registry.

Owns the map from host address to a fully independent client for that
host. Provisioning a peer (identification probe, client construction,
optional authentication) is a fallible, memoized factory:

    - a host with a cached peer is never probed again
    - concurrent lookups of the same unresolved host share one provisioning
      attempt instead of probing and authenticating twice
    - a failed attempt is not cached, so a later lookup probes again
"""

import asyncio
from typing import Any, Awaitable, Callable

from pipebomb.core.logger import get_logger
from pipebomb.federation import host_info
from pipebomb.federation.host_info import HostInfo


logger = get_logger(__name__)

PeerFactory = Callable[[HostInfo], Awaitable[Any]]


class PeerRegistry:
    """
    Map of host address to peer client with single-flight provisioning.

    Attributes:
        factory: Coroutine function building a client for a confirmed host.
        probe_timeout: Bound in seconds for each identification attempt.
    """

    def __init__(self, factory: PeerFactory, probe_timeout: float = host_info.DEFAULT_PROBE_TIMEOUT) -> None:
        self.factory = factory
        self.probe_timeout = probe_timeout
        self._peers: dict[str, Any] = {}
        self._pending: dict[str, asyncio.Future] = {}

    def __contains__(self, host: str) -> bool:
        return host in self._peers

    def __len__(self) -> int:
        return len(self._peers)

    def get(self, host: str) -> Any | None:
        """Return the cached peer for host without probing."""
        return self._peers.get(host)

    async def acquire(self, host: str) -> Any | None:
        """
        Return the peer client for host, provisioning it on first use.

        Returns:
            The peer client, or None if the host is unreachable or is not a
            pipebomb server.

        Raises:
            Whatever the factory raises (e.g. AuthenticationError); the
            failure is not cached.
        """
        peer = self._peers.get(host)
        if peer is not None:
            return peer

        pending = self._pending.get(host)
        if pending is None:
            pending = asyncio.ensure_future(self._provision(host))
            self._pending[host] = pending
            pending.add_done_callback(lambda done: self._forget(host, done))
        return await asyncio.shield(pending)

    def _forget(self, host: str, done: asyncio.Future) -> None:
        if self._pending.get(host) is done:
            del self._pending[host]
        # Mark the outcome retrieved; shielded callers may all have been cancelled
        if not done.cancelled() and done.exception() is not None:
            logger.debug(f"Provisioning {host} failed: {done.exception()}")

    async def _provision(self, host: str) -> Any | None:
        info = await host_info.check_host(host, timeout=self.probe_timeout)
        if info is None:
            return None

        logger.info(f"Connecting to peer {info.name} at {info.url}")
        peer = await self.factory(info)
        self._peers[host] = peer
        return peer

    async def clear(self) -> None:
        """Drop every peer, closing their sessions, and abandon pending lookups."""
        for pending in list(self._pending.values()):
            pending.cancel()
        self._pending.clear()

        peers = list(self._peers.values())
        self._peers.clear()
        for peer in peers:
            await peer.close()
