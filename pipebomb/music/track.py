"""
Track entity.

A Track's identity is its track ID, fixed at construction. Everything
else is payload that may be unknown at first and filled in later:

    - metadata (title, artists, image) is loaded lazily and, once known, is
      never overwritten by an update that carries no metadata
    - lyrics are loaded at most once; "this track has no lyrics" is
      remembered just like actual lyrics, and is distinct from "not tried"
"""

from dataclasses import dataclass
from typing import Any

from pipebomb.core.exceptions import ResponseError
from pipebomb.core.logger import get_logger


logger = get_logger(__name__)

# Marks lyrics that have not been requested yet
_NOT_LOADED = object()


@dataclass(frozen=True)
class TrackMeta:
    """
    Display metadata of a track.

    Attributes:
        title: Track title.
        artists: Artist names in credit order.
        image: URL of the cover image, if the service provides one.
    """
    title: str
    artists: tuple[str, ...]
    image: str | None = None

    @property
    def primary_artist(self) -> str:
        return self.artists[0] if self.artists else ""

    @classmethod
    def from_json(cls, json: Any) -> "TrackMeta | None":
        if not isinstance(json, dict):
            return None
        title = json.get("title")
        artists = json.get("artists")
        if not isinstance(title, str) or not isinstance(artists, list):
            return None
        if not all(isinstance(artist, str) for artist in artists):
            return None
        image = json.get("image")
        return cls(title=title, artists=tuple(artists), image=image if isinstance(image, str) and image else None)


@dataclass(frozen=True)
class LyricLine:
    """One line of lyrics; time is the offset in seconds for synced lyrics."""
    words: str
    time: float | None = None


@dataclass(frozen=True)
class Lyrics:
    """
    Lyrics of a track.

    Attributes:
        synced: True if every line carries a timestamp.
        lines: Lines in order.
    """
    synced: bool
    lines: tuple[LyricLine, ...]

    @property
    def text(self) -> str:
        return "\n".join(line.words for line in self.lines)

    @classmethod
    def from_json(cls, json: Any) -> "Lyrics | None":
        """
        Accepts either plain text or {synced, lyrics: [{time, words}]}.
        """
        if isinstance(json, str):
            return cls(synced=False, lines=tuple(LyricLine(words) for words in json.splitlines()))
        if not isinstance(json, dict) or not isinstance(json.get("lyrics"), list):
            return None

        lines = []
        for item in json["lyrics"]:
            if isinstance(item, str):
                lines.append(LyricLine(item))
            elif isinstance(item, dict) and isinstance(item.get("words"), str):
                time = item.get("time")
                lines.append(LyricLine(item["words"], float(time) if isinstance(time, (int, float)) else None))
        synced = bool(json.get("synced")) and all(line.time is not None for line in lines)
        return cls(synced=synced, lines=tuple(lines))


class Track:
    """
    A track on some server.

    Attributes:
        context: Context of the server the track belongs to.
        track_id: Identifier as emitted by that context (composite when the
                  context includes addresses in IDs). Immutable.
    """

    type = "track"

    def __init__(self, context, track_id: str, metadata: TrackMeta | None = None) -> None:
        self.context = context
        self._track_id = track_id
        self._metadata = metadata
        self._lyrics: Any = _NOT_LOADED

    def __repr__(self) -> str:
        title = self._metadata.title if self._metadata else "?"
        return f"Track({self._track_id!r}, {title!r})"

    @property
    def track_id(self) -> str:
        return self._track_id

    @property
    def local_id(self) -> str:
        """The ID in the form the owning server understands."""
        return self.context.to_local_id(self._track_id)

    @property
    def metadata(self) -> TrackMeta | None:
        """Metadata if already known; does not fetch."""
        return self._metadata

    def is_unknown(self) -> bool:
        return self._metadata is None

    def merge_from(self, other: "Track") -> bool:
        """
        Take other's metadata if it has any.

        Returns:
            True if the metadata changed.
        """
        if other is self or other.track_id != self._track_id or other._metadata is None:
            return False
        changed = other._metadata != self._metadata
        self._metadata = other._metadata
        if self._lyrics is _NOT_LOADED and other._lyrics is not _NOT_LOADED:
            self._lyrics = other._lyrics
        return changed

    async def get_metadata(self) -> TrackMeta | None:
        """
        Return the metadata, fetching it on first use.

        Returns:
            TrackMeta, or None if the server could not provide it.
        """
        if self._metadata is None:
            info = await self.context.make_request("get", f"v1/tracks/{self.local_id}")
            if info.status_code != 200:
                logger.debug(f"No metadata for {self._track_id}: {info.status_code}")
                return None
            fetched = Track.from_json(self.context, info.response)
            if fetched is None or fetched._metadata is None:
                return None
            self._metadata = fetched._metadata
        return self._metadata

    async def get_lyrics(self) -> Lyrics | None:
        """
        Return the lyrics, fetching them at most once.

        A 404 is remembered as "no lyrics" and returns None without another
        request on later calls. Other failures are not remembered.

        Raises:
            ResponseError: If the server fails with anything but 404.
        """
        if self._lyrics is not _NOT_LOADED:
            return self._lyrics

        info = await self.context.make_request("get", f"v1/tracks/{self.local_id}/lyrics")
        if info.status_code == 404:
            self._lyrics = None
        elif info.status_code == 200:
            self._lyrics = Lyrics.from_json(info.response)
        else:
            raise ResponseError(info, details={"track_id": self._track_id})
        return self._lyrics

    def get_audio_url(self) -> str:
        return f"{self.context.server_url}/v1/tracks/{self.local_id}/audio"

    def get_thumbnail_url(self) -> str:
        return f"{self.context.server_url}/v1/tracks/{self.local_id}/thumbnail"

    async def get_suggested_tracks(self, collection_cache):
        """
        Return the Suggestions list derived from this track.

        The list is cached in collection_cache under "suggestions/<trackID>".

        Raises:
            ResponseError: If the server does not return a track list.
        """
        return await collection_cache.get_suggestions(self)

    @staticmethod
    def from_json(context, json: Any) -> "Track | None":
        """
        Build a Track from a server payload.

        Expected shape:
            {trackID: str, metadata?: {title: str, artists: [str], image?: str} | null}

        Returns:
            Track, or None if the payload does not have that shape.
        """
        if not isinstance(json, dict) or not isinstance(json.get("trackID"), str):
            return None
        metadata = None
        if json.get("metadata") is not None:
            metadata = TrackMeta.from_json(json["metadata"])
            if metadata is None:
                return None
        return Track(context, context.qualify_id(json["trackID"]), metadata)
