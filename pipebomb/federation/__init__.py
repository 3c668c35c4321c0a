"""
Federation support: identifying peer servers and keeping one client per peer.

Usage:
    from pipebomb.federation import check_host, ServerInfo

    info = await check_host("music.example.org")
    if info is not None:
        server = ServerInfo.from_host_info(info)
        print(await server.get_latency())
"""

from pipebomb.federation.host_info import HostInfo, check_host, strip_scheme
from pipebomb.federation.peers import PeerRegistry
from pipebomb.federation.server_info import ServerInfo

__all__ = [
    "HostInfo",
    "check_host",
    "strip_scheme",
    "PeerRegistry",
    "ServerInfo",
]
