"""Cache of collection objects (playlists, charts, external collections, suggestions)."""

from typing import Any

from pipebomb.cache import ObjectCache
from pipebomb.collection.listing import parse_tracks
from pipebomb.collection.suggestions import Suggestions, suggestions_key
from pipebomb.core.exceptions import InvalidResponseError, ResponseError
from pipebomb.core.logger import get_logger


logger = get_logger(__name__)


def merge_collections(resident: Any, incoming: Any) -> Any:
    """
    Merge an incoming collection into the resident one of the same ID.

    Collections of different kinds never merge; the newcomer takes the
    slot.
    """
    if resident.kind is not incoming.kind:
        logger.debug(
            f"{resident.collection_id}: replacing {resident.kind.value} with {incoming.kind.value}"
        )
        return incoming
    resident.merge_from(incoming)
    return resident


class CollectionCache:
    """
    One live collection per collection ID, expiring after
    collection_cache_time seconds idle.
    """

    def __init__(self, context, track_cache, cache_time: float | None = None) -> None:
        self.context = context
        self.track_cache = track_cache
        if cache_time is None:
            cache_time = context.config.collection_cache_time
        self._cache: ObjectCache[Any] = ObjectCache(cache_time, merge_collections, name="collections")

    def __contains__(self, collection_id: str) -> bool:
        return self._key(collection_id) in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def _key(self, collection_id: str) -> str:
        return self.context.qualify_id(self.context.to_local_id(collection_id))

    def get_collection(self, collection_id: str) -> Any | None:
        return self._cache.get(self._key(collection_id))

    def set_collection(self, collection: Any) -> Any:
        """
        Put a collection, merging into the cached instance if there is one.

        Returns:
            The cache-resident collection; use it instead of the argument.
        """
        return self._cache.put(self._key(collection.collection_id), collection)

    def remove_collection(self, collection: Any) -> None:
        """Forget collection, unless another instance has taken its slot."""
        key = self._key(collection.collection_id)
        if self._cache.peek(key) is collection:
            self._cache.delete(key)

    def clear(self) -> None:
        self._cache.clear()

    async def get_suggestions(self, track) -> Suggestions:
        """
        Return the suggestions derived from track, fetching them on a miss.

        Raises:
            ResponseError: If the server returns anything but 200.
            InvalidResponseError: If the payload is not a track list.
        """
        cached = self.get_collection(suggestions_key(track.track_id))
        if isinstance(cached, Suggestions):
            return cached

        info = await self.context.make_request("get", f"v1/tracks/{track.local_id}/suggested")
        if info.status_code != 200:
            raise ResponseError(info, details={"track_id": track.track_id})
        if not isinstance(info.response, list):
            raise InvalidResponseError(info, "Server returned an invalid track list", {"track_id": track.track_id})

        tracks = parse_tracks(
            self.context,
            self.track_cache,
            [item for item in info.response if isinstance(item, dict)]
        )
        return self.set_collection(Suggestions(track, tracks))
