"""
Network layer: one-call transport, normalized responses, per-server context.

Usage:
    from pipebomb.net import Context

    context = Context("https://music.example.org")
    response = await context.make_request("get", "v1/playlists")
    if response.status_code == 200:
        ...
"""

from pipebomb.net.auth import KeyAuthenticator
from pipebomb.net.context import Context, Resolution, split_id
from pipebomb.net.request import Request
from pipebomb.net.response import Response

__all__ = [
    "Context",
    "KeyAuthenticator",
    "Request",
    "Resolution",
    "Response",
    "split_id",
]
