"""
Pieces shared by every collection variant.

Collections are not a class hierarchy. Each variant (Playlist, TrackList,
ExternalCollection, Suggestions) is its own class that:

    - carries a `kind` tag from CollectionKind
    - holds a TrackListing (display name + ordered track list) by composition
    - optionally holds a Subscribers list for change notifications

The collection cache checks `kind` before merging two objects with the
same collection ID; objects of different kinds are never merged.

Merge rule (TrackListing.merge):
    - the name is always taken from the incoming snapshot
    - the track list is taken only if the snapshot has one; an absent
      (None) track list never erases a known list
    - the merge reports a change iff the name changed or the track IDs
      differ position by position (including a different length)
"""

from enum import Enum
from typing import Any, Callable, Iterable, Sequence

from pipebomb.core.logger import get_logger
from pipebomb.music.track import Track


logger = get_logger(__name__)


class CollectionKind(Enum):
    PLAYLIST = "playlist"
    TRACK_LIST = "tracklist"
    EXTERNAL = "externalplaylist"
    SUGGESTIONS = "suggestions"


def track_ids(tracks: Iterable[Any]) -> list[str]:
    """IDs of a sequence of Track objects (plain strings pass through)."""
    return [track if isinstance(track, str) else track.track_id for track in tracks]


def track_ids_differ(current: Sequence[Any] | None, incoming: Sequence[Any] | None) -> bool:
    """
    Positional comparison of two track lists by track ID.

    Examples:
        track_ids_differ([a, b], [a, b])     -> False
        track_ids_differ([a, b], [b, a])     -> True
        track_ids_differ([a, b], [a, b, c])  -> True
    """
    if current is None or incoming is None:
        return current is not incoming
    if len(current) != len(incoming):
        return True
    return track_ids(current) != track_ids(incoming)


class TrackListing:
    """
    Display name plus ordered track list.

    Attributes:
        name: Display name.
        tracks: Ordered tracks, or None while the list is unknown.
    """

    def __init__(self, name: str, tracks: Sequence[Any] | None = None) -> None:
        self.name = name
        self.tracks = list(tracks) if tracks is not None else None

    def copy_tracks(self) -> list | None:
        return list(self.tracks) if self.tracks is not None else None

    def merge(self, incoming: "TrackListing") -> bool:
        """
        Apply an incoming snapshot of the same collection.

        Returns:
            True if subscribers should be notified.
        """
        changed = self.name != incoming.name
        self.name = incoming.name
        if incoming.tracks is not None:
            if track_ids_differ(self.tracks, incoming.tracks):
                changed = True
            self.tracks = list(incoming.tracks)
        return changed


class Subscribers:
    """Ordered set of update callbacks."""

    def __init__(self) -> None:
        self._callbacks: list[Callable[[Any], Any]] = []

    def __len__(self) -> int:
        return len(self._callbacks)

    def __bool__(self) -> bool:
        return bool(self._callbacks)

    def __contains__(self, callback: Callable[[Any], Any]) -> bool:
        return callback in self._callbacks

    def add(self, callback: Callable[[Any], Any]) -> bool:
        """Register callback. Returns False if it was already registered."""
        if callback in self._callbacks:
            return False
        self._callbacks.append(callback)
        return True

    def remove(self, callback: Callable[[Any], Any]) -> bool:
        """Unregister callback. Returns False if it was not registered."""
        if callback not in self._callbacks:
            return False
        self._callbacks.remove(callback)
        return True

    def notify(self, collection: Any) -> None:
        """Call every callback; a failing callback is logged and skipped."""
        for callback in list(self._callbacks):
            try:
                callback(collection)
            except Exception:
                logger.exception(f"Update callback {callback!r} failed for {collection!r}")


def valid_track_list_json(json: Any) -> bool:
    """A trackList payload is valid if absent or a list of {trackID: str} items."""
    if json is None:
        return True
    if not isinstance(json, list):
        return False
    return all(isinstance(item, dict) and isinstance(item.get("trackID"), str) for item in json)


def parse_tracks(context, track_cache, json: Any) -> list | None:
    """
    Convert a trackList payload to cache-resident Track objects.

    Items whose metadata fails validation are skipped. Returns None for an
    absent list.
    """
    if json is None:
        return None
    tracks = []
    for item in json:
        track = Track.from_json(context, item)
        if track is not None:
            tracks.append(track_cache.update_track(track))
    return tracks
