"""Tracks the server suggests as follow-ups to a given track."""

from pipebomb.collection.listing import CollectionKind, TrackListing


def suggestions_key(track_id: str) -> str:
    return f"suggestions/{track_id}"


class Suggestions:
    """
    Immutable list of suggested tracks derived from a parent track.

    Suggestions never merge: a cached list stays as fetched until it expires
    from the collection cache.
    """

    kind = CollectionKind.SUGGESTIONS

    def __init__(self, parent_track, tracks: list) -> None:
        self.parent_track = parent_track
        self.collection_id = suggestions_key(parent_track.track_id)
        self._listing = TrackListing(f"Suggestions for {parent_track.track_id}", tracks)

    def __repr__(self) -> str:
        return f"Suggestions({self.collection_id!r}, {len(self._listing.tracks)} tracks)"

    def get_name(self) -> str:
        return self._listing.name

    def get_track_list(self) -> list:
        return self._listing.copy_tracks()

    def merge_from(self, other: "Suggestions") -> bool:
        return False
