"""Collection variants and their cache."""

from pipebomb.collection.collection_cache import CollectionCache, merge_collections
from pipebomb.collection.external_collection import ExternalCollection
from pipebomb.collection.listing import CollectionKind, Subscribers, TrackListing, track_ids_differ
from pipebomb.collection.playlist import Playlist
from pipebomb.collection.suggestions import Suggestions
from pipebomb.collection.track_list import TrackList

__all__ = [
    "CollectionCache",
    "CollectionKind",
    "ExternalCollection",
    "Playlist",
    "Subscribers",
    "Suggestions",
    "TrackList",
    "TrackListing",
    "merge_collections",
    "track_ids_differ",
]
