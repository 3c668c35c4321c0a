"""Test configuration and fixtures"""

import asyncio
from typing import Any

import pytest

from pipebomb.client import PipeBomb
from pipebomb.core.config import PipeBombConfig
from pipebomb.net.response import Response


class FakeServer:
    """
    Scripted stand-in for Context.make_request.

    Each (method, endpoint) route holds a queue of Responses. Responses are
    served in order; the last one is repeated once the queue is down to it.
    Unscripted routes answer 404. Every call is recorded. A non-zero delay
    makes every call yield to the event loop before answering.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Response]] = {}
        self.calls: list[tuple[str, str, Any]] = []
        self.delay = 0.0

    def add(self, method: str, endpoint: str, body: Any = None, status_code: int = 200,
            status_message: str = "OK") -> None:
        self.routes.setdefault((method.lower(), endpoint), []).append(
            Response(status_code, status_message, body)
        )

    def fail(self, method: str, endpoint: str, status_code: int = 503,
             status_message: str = "Service Unavailable") -> None:
        self.add(method, endpoint, None, status_code, status_message)

    def count(self, method: str, endpoint: str) -> int:
        return sum(1 for call in self.calls if call[:2] == (method.lower(), endpoint))

    async def __call__(self, method: str, endpoint: str, body: Any = None) -> Response:
        self.calls.append((method.lower(), endpoint, body))
        if self.delay:
            await asyncio.sleep(self.delay)
        queue = self.routes.get((method.lower(), endpoint))
        if not queue:
            return Response(404, "Not Found", None)
        return queue.pop(0) if len(queue) > 1 else queue[0]


def playlist_json(collection_id="7", name="Drive", track_ids=("t1",), owner=None):
    """Playlist payload as the server sends it"""
    data = {"collectionID": collection_id, "name": name}
    if track_ids is not None:
        data["trackList"] = [{"trackID": track_id} for track_id in track_ids]
    if owner is not None:
        data["owner"] = owner
    return data


def track_json(track_id="t1", title="Song", artists=("Artist",)):
    """Track payload with metadata"""
    return {"trackID": track_id, "metadata": {"title": title, "artists": list(artists)}}


@pytest.fixture
def fake_server():
    """Scripted server with no routes"""
    return FakeServer()


@pytest.fixture
def client(fake_server):
    """Client for music.example.org talking to the fake server"""
    pipebomb = PipeBomb("music.example.org")
    pipebomb.context.make_request = fake_server
    return pipebomb


@pytest.fixture
def fast_client(fake_server):
    """Client whose subscribed playlists refresh every 50ms"""
    pipebomb = PipeBomb("music.example.org", config=PipeBombConfig(playlist_update_frequency=0.05))
    pipebomb.context.make_request = fake_server
    return pipebomb
