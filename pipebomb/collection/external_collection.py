"""
Collections mirrored from an external music service.

An external collection may be large, so its tracks are not part of the
collection payload. They are loaded page by page with load_next_page():

    - pages are requested in order, one at a time
    - the list is complete once it holds `size` tracks, or a page fails,
      or a page comes back empty
    - subscribers are notified after every page attempt
"""

from typing import Any, Callable

from pipebomb.collection.listing import CollectionKind, Subscribers, TrackListing, parse_tracks
from pipebomb.core.logger import get_logger


logger = get_logger(__name__)


class ExternalCollection:
    """
    A paginated, read-only collection from an external service.

    Attributes:
        collection_id: Collection ID as emitted by the owning context.
        service: Source service name.
        type: Source-side collection type (e.g. "playlist", "album").
        size: Total number of tracks the service reports.
        image: Thumbnail URL, if known.
    """

    kind = CollectionKind.EXTERNAL

    def __init__(
        self,
        context,
        track_cache,
        collection_id: str,
        name: str,
        service: str,
        type: str,
        size: int,
        image: str | None = None
    ) -> None:
        self.context = context
        self.collection_id = collection_id
        self.service = service
        self.type = type
        self.size = size
        self.image = image
        self._track_cache = track_cache
        self._listing = TrackListing(name)
        self._subscribers = Subscribers()
        self._loaded_pages = 0
        self._loading = False
        self._full = size <= 0

    def __repr__(self) -> str:
        return f"ExternalCollection({self.collection_id!r}, {self._listing.name!r})"

    @property
    def local_id(self) -> str:
        return self.context.to_local_id(self.collection_id)

    @property
    def loaded_pages(self) -> int:
        return self._loaded_pages

    def get_name(self) -> str:
        return self._listing.name

    def get_track_list(self) -> list | None:
        """Tracks loaded so far, or None before the first page."""
        return self._listing.copy_tracks()

    def is_loading(self) -> bool:
        return self._loading

    def has_full_tracklist(self) -> bool:
        return self._full

    def get_thumbnail_url(self) -> str:
        return f"{self.context.server_url}/v1/externalplaylists/{self.local_id}/thumbnail"

    async def load_next_page(self) -> None:
        """Fetch the next page of tracks; no-op while loading or once complete."""
        if self._loading or self._full:
            return

        self._loading = True
        try:
            info = await self.context.make_request(
                "get", f"v1/externalplaylists/{self.local_id}/page/{self._loaded_pages}"
            )
            if info.status_code != 200 or not isinstance(info.response, list):
                logger.debug(f"{self.collection_id}: page {self._loaded_pages} failed ({info.status_code})")
                self._full = True
                return

            page = parse_tracks(
                self.context,
                self._track_cache,
                [item for item in info.response if isinstance(item, dict)]
            )
            self._loaded_pages += 1
            if self._listing.tracks is None:
                self._listing.tracks = []
            self._listing.tracks.extend(page)
            if not page or len(self._listing.tracks) >= self.size:
                self._full = True
        finally:
            self._loading = False
            self._subscribers.notify(self)

    def merge_from(self, other: "ExternalCollection") -> bool:
        """Take the other snapshot's descriptive fields; loaded pages are kept."""
        if other is self or other.collection_id != self.collection_id:
            return False
        self.service = other.service
        self.type = other.type
        self.size = other.size
        if other.image is not None:
            self.image = other.image
        if len(self._listing.tracks or []) < self.size and not self._loading:
            self._full = False
        changed = self._listing.merge(other._listing)
        if changed:
            self._subscribers.notify(self)
        return changed

    def register_update_callback(self, callback: Callable[["ExternalCollection"], Any]) -> None:
        self._subscribers.add(callback)

    def unregister_update_callback(self, callback: Callable[["ExternalCollection"], Any]) -> None:
        self._subscribers.remove(callback)

    @staticmethod
    def from_json(context, track_cache, collection_cache, json: Any) -> "ExternalCollection | None":
        """
        Convert a payload and return the cache-resident ExternalCollection.

        Expected shape:
            {collectionID: str, name: str, service: str, type: str,
             size: int, image?: str}
        """
        collection = parse_external_collection(context, track_cache, json)
        if collection is None:
            return None
        return collection_cache.set_collection(collection)


def parse_external_collection(context, track_cache, json: Any) -> ExternalCollection | None:
    if not isinstance(json, dict):
        return None
    for field in ("collectionID", "name", "service", "type"):
        if not isinstance(json.get(field), str):
            return None
    size = json.get("size")
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        return None

    image = json.get("image")
    return ExternalCollection(
        context,
        track_cache,
        context.qualify_id(json["collectionID"]),
        json["name"],
        json["service"],
        json["type"],
        size,
        image if isinstance(image, str) and image else None
    )
