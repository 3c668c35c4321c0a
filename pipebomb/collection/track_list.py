"""
Read-only named track lists published by the server, such as charts.

A chart is addressed by its slug and cached under "charts/<slug>". It has
no refresh loop; callers that want fresh data fetch it again through the
API, and the new snapshot is merged into the cached instance.
"""

from typing import Any, Callable

from pipebomb.collection.listing import (
    CollectionKind,
    Subscribers,
    TrackListing,
    parse_tracks,
    valid_track_list_json,
)


def chart_key(slug: str) -> str:
    return f"charts/{slug}"


class TrackList:
    """
    A read-only named list of tracks.

    Attributes:
        collection_id: "charts/<slug>", qualified by the owning context.
        slug: Chart slug as the server knows it.
        service: Music service the list comes from, if known.
        image: Thumbnail URL, if known.
    """

    kind = CollectionKind.TRACK_LIST

    def __init__(
        self,
        context,
        slug: str,
        name: str,
        tracks: list | None = None,
        service: str | None = None,
        image: str | None = None
    ) -> None:
        self.context = context
        self.slug = slug
        self.collection_id = context.qualify_id(chart_key(slug))
        self.service = service
        self.image = image
        self._listing = TrackListing(name, tracks)
        self._subscribers = Subscribers()

    def __repr__(self) -> str:
        return f"TrackList({self.collection_id!r}, {self._listing.name!r})"

    def get_name(self) -> str:
        return self._listing.name

    def get_track_list(self) -> list | None:
        """Copy of the tracks, or None if the list was not included."""
        return self._listing.copy_tracks()

    def merge_from(self, other: "TrackList") -> bool:
        if other is self or other.collection_id != self.collection_id:
            return False
        if other.service is not None:
            self.service = other.service
        if other.image is not None:
            self.image = other.image
        changed = self._listing.merge(other._listing)
        if changed:
            self._subscribers.notify(self)
        return changed

    def register_update_callback(self, callback: Callable[["TrackList"], Any]) -> None:
        self._subscribers.add(callback)

    def unregister_update_callback(self, callback: Callable[["TrackList"], Any]) -> None:
        self._subscribers.remove(callback)

    @staticmethod
    def from_json(context, track_cache, collection_cache, json: Any) -> "TrackList | None":
        """
        Convert a chart payload and return the cache-resident TrackList.

        Expected shape:
            {slug | collectionID: str, name: str, service?: str, image?: str,
             trackList?: [{trackID: str, metadata?: ...}] | null}
        """
        track_list = parse_track_list(context, track_cache, json)
        if track_list is None:
            return None
        return collection_cache.set_collection(track_list)


def parse_track_list(context, track_cache, json: Any) -> TrackList | None:
    if not isinstance(json, dict):
        return None
    slug = json.get("slug", json.get("collectionID"))
    if not isinstance(slug, str) or not slug or not isinstance(json.get("name"), str):
        return None
    if not valid_track_list_json(json.get("trackList")):
        return None

    service = json.get("service")
    image = json.get("image")
    return TrackList(
        context,
        context.to_local_id(slug),
        json["name"],
        parse_tracks(context, track_cache, json.get("trackList")),
        service if isinstance(service, str) else None,
        image if isinstance(image, str) and image else None
    )
