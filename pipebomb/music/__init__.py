"""Tracks and the per-context track cache."""

from pipebomb.music.track import Lyrics, LyricLine, Track, TrackMeta
from pipebomb.music.track_cache import TrackCache

__all__ = ["Lyrics", "LyricLine", "Track", "TrackCache", "TrackMeta"]
