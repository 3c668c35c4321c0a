"""Tests for identifier resolution, peer provisioning and host probing"""

import asyncio
import gc
from unittest.mock import AsyncMock, Mock, patch

import pytest

from pipebomb.client import PipeBomb
from pipebomb.core.config import PipeBombConfig
from pipebomb.core.exceptions import AuthenticationError, ServerOfflineError
from pipebomb.federation import host_info
from pipebomb.federation.host_info import (
    HostInfo,
    ProbeConnectionError,
    ProbeRejectedError,
    check_host,
    parse_identity,
    strip_scheme,
)
from pipebomb.federation.peers import PeerRegistry
from pipebomb.net.context import Context, split_id

from conftest import FakeServer, playlist_json

FRIEND = HostInfo(address="friend.example.org", name="Friend", https=True)


class IdentifyReply:
    def __init__(self, raw):
        self._raw = raw

    async def read(self):
        return self._raw

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class IdentifySession:
    """Stand-in for aiohttp.ClientSession answering every GET with fixed bytes"""

    def __init__(self, raw):
        self.raw = raw
        self.urls = []

    def get(self, url):
        self.urls.append(url)
        return IdentifyReply(self.raw)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class TestIdentifiers:
    """Test composite identifier handling"""

    def test_split_id(self):
        """Split happens on the first separator"""
        assert split_id("42") == (None, "42")
        assert split_id("host@42") == ("host", "42")
        assert split_id("host@a@b") == ("host", "a@b")

    def test_qualify_and_strip(self):
        """Address prefixing only applies when enabled"""
        plain = Context("music.example.org")
        assert plain.qualify_id("42") == "42"

        prefixed = Context("https://music.example.org/", config=PipeBombConfig(include_address_in_ids=True))
        assert prefixed.address == "music.example.org"
        assert prefixed.qualify_id("42") == "music.example.org@42"
        assert prefixed.qualify_id("other.org@42") == "other.org@42"
        assert prefixed.to_local_id("music.example.org@42") == "42"
        assert prefixed.to_local_id("other.org@42") == "other.org@42"

    def test_scheme_defaults_to_https(self):
        """A bare host gets https://"""
        assert Context("music.example.org").server_url == "https://music.example.org"
        assert Context("http://music.example.org").server_url == "http://music.example.org"


class TestResolver:
    """Test Context.resolve"""

    @pytest.mark.asyncio
    async def test_plain_id_is_local(self, client):
        """IDs without a host are local"""
        resolution = await client.context.resolve("42")
        assert resolution.local
        assert resolution.id == "42"

    @pytest.mark.asyncio
    async def test_own_host_is_local(self, client):
        """IDs prefixed with the own address are local"""
        with patch.object(host_info, "check_host", AsyncMock()) as probe:
            resolution = await client.context.resolve("music.example.org@42")
        assert resolution.local
        assert resolution.id == "42"
        probe.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_host_probed_once(self, client):
        """A confirmed peer is cached and never probed again"""
        with patch.object(host_info, "check_host", AsyncMock(return_value=FRIEND)) as probe:
            first = await client.context.resolve("friend.example.org@42")
            second = await client.context.resolve("friend.example.org@43")

        assert probe.await_count == 1
        assert not first.local
        assert first.id == "42"
        assert first.peer is second.peer
        assert isinstance(first.peer, PipeBomb)
        assert "friend.example.org" in client.context.peers

    @pytest.mark.asyncio
    async def test_peer_inherits_options_with_addresses(self, fake_server):
        """Peers copy options but always include addresses in IDs"""
        local = PipeBomb("music.example.org", config=PipeBombConfig(collection_cache_time=42))
        local.context.make_request = fake_server
        with patch.object(host_info, "check_host", AsyncMock(return_value=FRIEND)):
            resolution = await local.context.resolve("friend.example.org@1")

        config = resolution.peer.context.config
        assert config.include_address_in_ids
        assert config.collection_cache_time == 42
        assert not local.context.config.include_address_in_ids
        assert resolution.peer.context.server_url == "https://friend.example.org"

    @pytest.mark.asyncio
    async def test_concurrent_resolution_is_single_flight(self, client):
        """Two racing lookups of a new host share one probe"""
        async def slow_probe(host, timeout):
            await asyncio.sleep(0.02)
            return FRIEND

        with patch.object(host_info, "check_host", AsyncMock(side_effect=slow_probe)) as probe:
            first, second = await asyncio.gather(
                client.context.resolve("friend.example.org@1"),
                client.context.resolve("friend.example.org@2"),
            )

        assert probe.await_count == 1
        assert first.peer is second.peer

    @pytest.mark.asyncio
    async def test_unreachable_host(self, client):
        """An offline host resolves without a peer and is probed again later"""
        with patch.object(host_info, "check_host", AsyncMock(return_value=None)) as probe:
            first = await client.context.resolve("gone.example.org@1")
            await client.context.resolve("gone.example.org@1")

        assert not first.local
        assert first.peer is None
        assert not first.reachable
        assert probe.await_count == 2

    @pytest.mark.asyncio
    async def test_unreachable_host_is_not_a_404(self, client):
        """The API reports an offline owner distinctly"""
        with patch.object(host_info, "check_host", AsyncMock(return_value=None)):
            with pytest.raises(ServerOfflineError) as exc_info:
                await client.v1.get_playlist("gone.example.org@1")
        assert exc_info.value.host == "gone.example.org"

    @pytest.mark.asyncio
    async def test_authenticated_context_logs_in_to_peer(self, client):
        """Peers are logged in under the same user, creating the account"""
        authenticator = Mock()
        authenticator.authenticate = AsyncMock(return_value="jwt")
        client.context.token = "token"
        client.context.username = "alice"
        client.context.authenticator = authenticator

        with patch.object(host_info, "check_host", AsyncMock(return_value=FRIEND)):
            resolution = await client.context.resolve("friend.example.org@1")

        authenticator.authenticate.assert_awaited_once_with(resolution.peer.context, "alice", True)

    @pytest.mark.asyncio
    async def test_remote_playlist_is_fetched_from_peer(self, client, fake_server):
        """Remote IDs are delegated and come back fully qualified"""
        peer_server = FakeServer()
        peer_server.add("get", "v1/playlists/12", playlist_json("12", "Remote", ["t9"]))
        peer = PipeBomb("friend.example.org", config=PipeBombConfig(include_address_in_ids=True))
        peer.context.make_request = peer_server
        client.context.peers._peers["friend.example.org"] = peer

        playlist = await client.v1.get_playlist("friend.example.org@12")

        assert playlist.collection_id == "friend.example.org@12"
        assert playlist.context is peer.context
        assert (await playlist.get_track_list())[0].track_id == "friend.example.org@t9"
        assert fake_server.calls == []

    @pytest.mark.asyncio
    async def test_set_server_url_drops_peers(self, client):
        """Changing host closes and forgets every peer"""
        peer = Mock()
        peer.close = AsyncMock()
        client.context.peers._peers["friend.example.org"] = peer
        await client.set_server_url("other.example.org")
        peer.close.assert_awaited_once()
        assert len(client.context.peers) == 0
        assert client.context.address == "other.example.org"


class TestCheckHost:
    """Test the HTTPS-first identification probe"""

    def test_strip_scheme(self):
        """Schemes and trailing slashes are removed"""
        assert strip_scheme("https://host.org/") == "host.org"
        assert strip_scheme("HTTP://host.org:8080") == "host.org:8080"
        assert strip_scheme("host.org") == "host.org"

    def test_parse_identity(self):
        """A reply must be a 200 envelope naming a pipebomb server"""
        assert parse_identity({"statusCode": 200, "response": {"pipeBombServer": True, "name": "A"}}) == "A"
        assert parse_identity({"statusCode": 200, "response": {"name": "A"}}) == "A"
        assert parse_identity({"statusCode": 200, "response": {"pipeBombServer": True}}) == ""
        assert parse_identity({"statusCode": 200, "response": {"pipeBombServer": False}}) is None
        assert parse_identity({"statusCode": 500, "response": {"name": "A"}}) is None
        assert parse_identity("hello") is None

    @pytest.mark.asyncio
    async def test_https_first(self):
        """HTTPS success returns without trying HTTP"""
        with patch.object(host_info, "_identify", AsyncMock(return_value="Friend")) as identify:
            info = await check_host("https://friend.example.org/")
        assert info == HostInfo("friend.example.org", "Friend", True)
        assert identify.await_count == 1
        assert identify.await_args.args[1] == "https://friend.example.org"

    @pytest.mark.asyncio
    async def test_falls_back_to_http(self):
        """An unreachable HTTPS endpoint falls back to HTTP"""
        identify = AsyncMock(side_effect=[ProbeConnectionError("refused"), "Friend"])
        with patch.object(host_info, "_identify", identify):
            info = await check_host("friend.example.org")
        assert info == HostInfo("friend.example.org", "Friend", False)
        assert [call.args[1] for call in identify.await_args_list] == [
            "https://friend.example.org",
            "http://friend.example.org",
        ]

    @pytest.mark.asyncio
    async def test_https_rejection_skips_http(self):
        """A non-pipebomb HTTPS server rejects the host outright"""
        identify = AsyncMock(side_effect=ProbeRejectedError("not a pipebomb server"))
        with patch.object(host_info, "_identify", identify):
            assert await check_host("friend.example.org") is None
        assert identify.await_count == 1

    @pytest.mark.asyncio
    async def test_both_unreachable(self):
        """Unreachable over both protocols returns None"""
        identify = AsyncMock(side_effect=ProbeConnectionError("refused"))
        with patch.object(host_info, "_identify", identify):
            assert await check_host("friend.example.org") is None
        assert identify.await_count == 2

    @pytest.mark.asyncio
    async def test_name_falls_back_to_address(self):
        """A nameless server is named after its address"""
        with patch.object(host_info, "_identify", AsyncMock(return_value="")):
            info = await check_host("friend.example.org")
        assert info.name == "friend.example.org"

    @pytest.mark.asyncio
    async def test_undecodable_reply_is_rejected(self):
        """Identify bytes that are not UTF-8 reject the host"""
        with pytest.raises(ProbeRejectedError):
            await host_info._identify(IdentifySession(b'\xff\xfe{"bad"'), "https://friend.example.org")

    @pytest.mark.asyncio
    async def test_undecodable_reply_resolves_without_peer(self, client):
        """A host answering undecodable bytes resolves to no peer"""
        session = IdentifySession(b'\xff\xfe{"bad"')
        with patch.object(host_info.aiohttp, "ClientSession", lambda **kwargs: session):
            resolution = await client.context.resolve("friend.example.org@1")
        assert resolution.peer is None
        assert not resolution.local
        assert session.urls == ["https://friend.example.org/v1/identify"]


class TestPeerRegistry:
    """Test peer provisioning outside of a client"""

    @pytest.mark.asyncio
    async def test_abandoned_failure_is_retrieved(self):
        """A failed provisioning whose only caller was cancelled is not reported as unhandled"""
        loop = asyncio.get_running_loop()
        unhandled = []
        loop.set_exception_handler(lambda loop, context: unhandled.append(context))
        started = asyncio.Event()

        async def failing_factory(info):
            started.set()
            await asyncio.sleep(0.01)
            raise AuthenticationError("Login refused", "alice")

        registry = PeerRegistry(failing_factory)
        try:
            with patch.object(host_info, "check_host", AsyncMock(return_value=FRIEND)):
                caller = asyncio.ensure_future(registry.acquire("friend.example.org"))
                await started.wait()
                pending = registry._pending["friend.example.org"]
                caller.cancel()
                with pytest.raises(asyncio.CancelledError):
                    await caller
                await asyncio.wait([pending])

            assert "friend.example.org" not in registry._pending
            assert "friend.example.org" not in registry
            del pending, caller
            gc.collect()
            assert unhandled == []
        finally:
            loop.set_exception_handler(None)
