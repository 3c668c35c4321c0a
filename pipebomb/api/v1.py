"""
Version 1 of the server API.

Every call that takes an identifier first asks the context which server
owns it. Identifiers owned by a peer are handed to that peer's own V1
instance, so the objects returned belong to (and later talk to) the
peer. An owner that cannot be reached raises ServerOfflineError, which
is distinct from the ResponseError a 404 for the object would raise.
"""

from typing import Any

from pipebomb.api.models import FOUND_OBJECT, SEARCH_RESULTS, ServiceInfo
from pipebomb.collection.external_collection import ExternalCollection
from pipebomb.collection.playlist import Playlist
from pipebomb.collection.track_list import TrackList
from pipebomb.core.exceptions import InvalidResponseError, ResponseError, ServerOfflineError
from pipebomb.core.logger import get_logger
from pipebomb.federation.server_info import ServerInfo
from pipebomb.music.track import Track
from pipebomb.net.context import Resolution
from pipebomb.net.response import Response
from pipebomb.user import User


logger = get_logger(__name__)


class V1:
    """
    Endpoints under /v1.

    Attributes:
        context: Context of the server these endpoints belong to.
        track_cache: Track cache of that context.
        collection_cache: Collection cache of that context.
    """

    version = "v1"

    def __init__(self, context, track_cache, collection_cache) -> None:
        self.context = context
        self.track_cache = track_cache
        self.collection_cache = collection_cache

    async def _request(self, method: str, path: str, body: Any = None) -> Response:
        return await self.context.make_request(method, f"{self.version}/{path}", body)

    async def _resolve(self, identifier: str) -> Resolution:
        resolution = await self.context.resolve(str(identifier))
        if not resolution.reachable:
            raise ServerOfflineError(resolution.host)
        return resolution

    @staticmethod
    def _expect(response: Response, status_code: int = 200, **details: Any) -> Any:
        if response.status_code != status_code:
            raise ResponseError(response, details=details or None)
        return response.response

    # =========================================================================
    # Server
    # =========================================================================

    async def identify(self) -> ServerInfo:
        """
        Ask the server who it is.

        Raises:
            ResponseError: If the server does not answer 200.
            InvalidResponseError: If the reply carries no server name.
        """
        response = await self._request("get", "identify")
        body = self._expect(response)
        if not isinstance(body, dict) or not isinstance(body.get("name"), str):
            raise InvalidResponseError(response, "Server did not identify itself")
        uptime = body.get("uptime")
        return ServerInfo(
            self.context.address,
            body["name"],
            self.context.server_url.startswith("https://"),
            uptime if isinstance(uptime, (int, float)) and not isinstance(uptime, bool) else 0
        )

    async def get_services(self) -> list[ServiceInfo]:
        body = self._expect(await self._request("get", "services"))
        if not isinstance(body, list):
            return []
        services = [ServiceInfo.from_json(item) for item in body]
        return [service for service in services if service is not None]

    # =========================================================================
    # Search
    # =========================================================================

    async def search(self, service: str, query: str) -> Any:
        """
        Search a service.

        Returns:
            The object itself when the server recognised the query as a
            direct reference (e.g. a pasted URL), otherwise a list of
            Track, Playlist and ExternalCollection results. Invalid items
            are skipped.
        """
        body = self._expect(await self._request("post", "search", {"service": service, "query": query}))

        if isinstance(body, list):
            return self._convert_results(body, default_type="track")

        if isinstance(body, dict) and body.get("responseType") == FOUND_OBJECT:
            return await self._fetch_found_object(body.get("objectType"), body.get("id"))

        if isinstance(body, dict) and body.get("responseType") == SEARCH_RESULTS:
            results = body.get("results")
            return self._convert_results(results if isinstance(results, list) else [])

        logger.debug(f"Unrecognised search response for {query!r}")
        return []

    async def _fetch_found_object(self, object_type: Any, object_id: Any) -> Any:
        if not isinstance(object_id, (str, int)) or isinstance(object_id, bool):
            return None
        object_id = str(object_id)
        if object_type == "track":
            return await self.get_track(object_id)
        if object_type == "playlist":
            return await self.get_playlist(object_id)
        if object_type == "externalplaylist":
            return await self.get_external_playlist(object_id)
        if object_type == "user":
            return await self.get_user(object_id)
        logger.debug(f"Search found an object of unknown type {object_type!r}")
        return None

    def _convert_results(self, items: list, default_type: str | None = None) -> list:
        results = []
        for item in items:
            if not isinstance(item, dict):
                continue
            item_type = item.get("objectType", default_type)
            converted = None
            if item_type == "track":
                track = Track.from_json(self.context, item)
                if track is not None:
                    converted = self.track_cache.update_track(track)
            elif item_type == "playlist":
                converted = Playlist.from_json(self.context, self.track_cache, self.collection_cache, item)
            elif item_type == "externalplaylist":
                converted = ExternalCollection.from_json(self.context, self.track_cache, self.collection_cache, item)
            if converted is not None:
                results.append(converted)
        return results

    # =========================================================================
    # Tracks and users
    # =========================================================================

    async def get_track(self, track_id: str) -> Track:
        resolution = await self._resolve(track_id)
        if not resolution.local:
            return await resolution.peer.v1.get_track(resolution.id)
        return await self.track_cache.get_track(resolution.id)

    async def get_user(self, user_id: str) -> User:
        resolution = await self._resolve(user_id)
        if not resolution.local:
            return await resolution.peer.v1.get_user(resolution.id)

        response = await self._request("get", f"user/{resolution.id}")
        user = User.from_json(self.context, self._expect(response, user_id=user_id))
        if user is None:
            raise InvalidResponseError(response, "Server returned an invalid user", {"user_id": user_id})
        return user

    # =========================================================================
    # Playlists
    # =========================================================================

    async def get_playlists(self) -> list[Playlist]:
        """Playlists owned by the authenticated user. Invalid items are skipped."""
        body = self._expect(await self._request("get", "playlists"))
        if not isinstance(body, list):
            return []
        playlists = []
        for item in body:
            playlist = Playlist.from_json(self.context, self.track_cache, self.collection_cache, item)
            if playlist is not None:
                playlists.append(playlist)
        return playlists

    async def get_playlist(self, collection_id: str) -> Playlist:
        """
        Fetch a playlist and return the single live instance for its ID.

        Raises:
            ServerOfflineError: If the owning peer is unreachable.
            ResponseError: If the server does not answer 200.
            InvalidResponseError: If the payload is not a playlist.
        """
        resolution = await self._resolve(collection_id)
        if not resolution.local:
            return await resolution.peer.v1.get_playlist(resolution.id)

        response = await self._request("get", f"playlists/{resolution.id}")
        body = self._expect(response, collection_id=collection_id)
        playlist = Playlist.from_json(self.context, self.track_cache, self.collection_cache, body)
        if playlist is None:
            raise InvalidResponseError(response, "Server returned an invalid playlist",
                                       {"collection_id": collection_id})
        return playlist

    async def create_playlist(self, name: str, tracks: list | None = None) -> Playlist:
        """Create a playlist owned by the authenticated user."""
        track_ids = [
            self.context.to_local_id(track if isinstance(track, str) else track.track_id)
            for track in tracks or []
        ]
        response = await self._request("post", "playlists", {"playlist_title": name, "tracks": track_ids})
        body = self._expect(response, 201)
        playlist = Playlist.from_json(self.context, self.track_cache, self.collection_cache, body)
        if playlist is None:
            raise InvalidResponseError(response, "Server returned an invalid playlist")
        logger.info(f"Created playlist {playlist.collection_id} ({name})")
        return playlist

    # =========================================================================
    # Charts and external collections
    # =========================================================================

    async def get_charts(self) -> list[TrackList]:
        body = self._expect(await self._request("get", "charts"))
        if not isinstance(body, list):
            return []
        charts = []
        for item in body:
            chart = TrackList.from_json(self.context, self.track_cache, self.collection_cache, item)
            if chart is not None:
                charts.append(chart)
        return charts

    async def get_chart(self, slug: str) -> TrackList:
        resolution = await self._resolve(slug)
        if not resolution.local:
            return await resolution.peer.v1.get_chart(resolution.id)

        response = await self._request("get", f"charts/{resolution.id}")
        body = self._expect(response, slug=slug)
        if isinstance(body, dict) and "slug" not in body and "collectionID" not in body:
            body = dict(body, slug=resolution.id)
        chart = TrackList.from_json(self.context, self.track_cache, self.collection_cache, body)
        if chart is None:
            raise InvalidResponseError(response, "Server returned an invalid chart", {"slug": slug})
        return chart

    async def get_external_playlist(self, collection_id: str) -> ExternalCollection:
        resolution = await self._resolve(collection_id)
        if not resolution.local:
            return await resolution.peer.v1.get_external_playlist(resolution.id)

        response = await self._request("get", f"externalplaylists/{resolution.id}")
        body = self._expect(response, collection_id=collection_id)
        collection = ExternalCollection.from_json(self.context, self.track_cache, self.collection_cache, body)
        if collection is None:
            raise InvalidResponseError(response, "Server returned an invalid external playlist",
                                       {"collection_id": collection_id})
        return collection
