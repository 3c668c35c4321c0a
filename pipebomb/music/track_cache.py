"""Cache of Track objects for one Context."""

from pipebomb.cache import ObjectCache
from pipebomb.core.exceptions import InvalidResponseError, ResponseError
from pipebomb.core.logger import get_logger
from pipebomb.music.track import Track


logger = get_logger(__name__)


def merge_tracks(resident: Track, incoming: Track) -> Track:
    """Keep the resident track, taking the incoming metadata if it has any."""
    resident.merge_from(incoming)
    return resident


class TrackCache:
    """
    One live Track per track ID, expiring after track_cache_time seconds idle.

    Attributes:
        context: Context the cached tracks belong to.
    """

    def __init__(self, context, cache_time: float | None = None) -> None:
        self.context = context
        if cache_time is None:
            cache_time = context.config.track_cache_time
        self._cache: ObjectCache[Track] = ObjectCache(cache_time, merge_tracks, name="tracks")

    def __contains__(self, track_id: str) -> bool:
        return self._key(track_id) in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def _key(self, track_id: str) -> str:
        return self.context.qualify_id(self.context.to_local_id(track_id))

    def update_track(self, track: Track) -> Track:
        """
        Put a track, merging into the cached instance if there is one.

        Returns:
            The cache-resident Track; use it instead of the argument.
        """
        return self._cache.put(self._key(track.track_id), track)

    def peek_track(self, track_id: str) -> Track | None:
        return self._cache.peek(self._key(track_id))

    async def get_track(self, track_id: str) -> Track:
        """
        Return the track, fetching it from the server on a cache miss.

        Concurrent misses for the same ID may both fetch; the second result
        merges into the first, so both callers end up with one instance.

        Raises:
            ResponseError: If the server returns anything but 200.
            InvalidResponseError: If the payload is not a track.
        """
        key = self._key(track_id)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        info = await self.context.make_request("get", f"v1/tracks/{self.context.to_local_id(track_id)}")

        if info.status_code != 200:
            # Another fetch may have filled the cache meanwhile
            cached = self._cache.get(key)
            if cached is not None:
                return cached
            raise ResponseError(info, details={"track_id": track_id})

        track = Track.from_json(self.context, info.response)
        if track is None:
            raise InvalidResponseError(info, "Server returned an invalid track", {"track_id": track_id})
        return self._cache.put(self._key(track.track_id), track)

    def clear(self) -> None:
        self._cache.clear()
