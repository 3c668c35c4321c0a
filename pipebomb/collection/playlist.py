"""
Playlist: a mutable, server-authoritative, user-owned track list.

Identity:
    At most one live Playlist per collection ID exists per client. Fetching
    a playlist that is already cached merges the fresh state into the cached
    instance, so references held by callers and their registered callbacks
    stay valid.

Live refresh:
    A playlist with at least one update callback refreshes itself on a
    timer, every playlist_update_frequency seconds:

        idle --register first callback--> scheduled
        scheduled --timer fires--> refreshing
        refreshing --done or failed, callbacks remain--> scheduled
        refreshing --done or failed, no callbacks--> idle
        scheduled --unregister last callback--> idle

    Failures of a timer-driven refresh are logged and swallowed; the loop
    re-arms regardless. check_for_updates() performs the same refresh on
    demand but raises on failure.

Deletion:
    delete() empties the track list, fires a final notification, drops the
    playlist from the cache and makes the instance inert: every later
    operation raises CollectionDeletedError without a network call.
"""

import asyncio
import time
from typing import Any, Callable

from pipebomb.collection.listing import (
    CollectionKind,
    Subscribers,
    TrackListing,
    parse_tracks,
    valid_track_list_json,
)
from pipebomb.core.exceptions import CollectionDeletedError, InvalidResponseError, ResponseError
from pipebomb.core.logger import get_logger, log_refresh_failure
from pipebomb.user import User


logger = get_logger(__name__)

# Seconds a fetched list of suggested tracks is considered fresh
SUGGESTIONS_MAX_AGE = 600


class Playlist:
    """
    A playlist on some server.

    Attributes:
        kind: CollectionKind.PLAYLIST.
        context: Context of the owning server.
        collection_id: Playlist ID as emitted by that context. Immutable.
        owner: Owning user, if the server reported one.
    """

    kind = CollectionKind.PLAYLIST

    def __init__(
        self,
        context,
        track_cache,
        collection_cache,
        collection_id: str,
        name: str,
        owner: User | None = None,
        tracks: list | None = None
    ) -> None:
        self.context = context
        self.collection_id = collection_id
        self.owner = owner
        self._track_cache = track_cache
        self._collection_cache = collection_cache
        self._listing = TrackListing(name, tracks)
        self._subscribers = Subscribers()
        self._deleted = False
        self._suggested: list = []
        self._suggested_updated: float | None = None
        self._refresh_handle: asyncio.TimerHandle | None = None
        self._refresh_task: asyncio.Task | None = None
        self._refreshing = False
        self._last_checked = time.time()

    def __repr__(self) -> str:
        return f"Playlist({self.collection_id!r}, {self._listing.name!r})"

    @property
    def local_id(self) -> str:
        return self.context.to_local_id(self.collection_id)

    @property
    def refresh_state(self) -> str:
        """"idle", "scheduled" or "refreshing"."""
        if self._refreshing:
            return "refreshing"
        if self._refresh_handle is not None:
            return "scheduled"
        return "idle"

    @property
    def tracks(self) -> list | None:
        """Known tracks without fetching, or None while unknown."""
        return self._listing.copy_tracks()

    @property
    def last_checked(self) -> float:
        return self._last_checked

    def get_name(self) -> str:
        return self._listing.name

    def is_deleted(self) -> bool:
        return self._deleted

    def _check_deletion(self) -> None:
        if self._deleted:
            raise CollectionDeletedError(self.collection_id)

    # =========================================================================
    # Reading
    # =========================================================================

    async def get_track_list(self) -> list:
        """
        Return a copy of the track list, fetching it if still unknown.

        Raises:
            CollectionDeletedError: If the playlist was deleted.
            ResponseError: If the fetch fails.
        """
        self._check_deletion()
        if self._listing.tracks is None:
            self._apply(await self._fetch_snapshot())
        return self._listing.copy_tracks() or []

    async def get_suggested_tracks(self) -> list:
        """
        Return tracks the server suggests adding to this playlist.

        A fetched list is reused for SUGGESTIONS_MAX_AGE seconds. If a
        refetch fails, the last known list is returned instead.
        """
        self._check_deletion()
        now = time.time()
        if self._suggested_updated is not None and now - self._suggested_updated < SUGGESTIONS_MAX_AGE:
            return list(self._suggested)

        info = await self.context.make_request("get", f"v1/playlists/{self.local_id}/suggested")
        if info.status_code != 200 or not isinstance(info.response, list):
            logger.warning(
                f"Could not fetch suggestions for playlist {self.collection_id}: "
                f"{info.status_code} {info.status_message}"
            )
            return list(self._suggested)

        self._suggested = parse_tracks(
            self.context,
            self._track_cache,
            [item for item in info.response if isinstance(item, dict)]
        ) or []
        self._suggested_updated = now
        return list(self._suggested)

    # =========================================================================
    # Mutations
    # =========================================================================

    async def add_tracks(self, *tracks: Any) -> None:
        """Append tracks (Track objects or IDs) on the server."""
        await self._update({"tracks": {"add": [self._wire_id(track) for track in tracks]}})

    async def remove_tracks(self, *tracks: Any) -> None:
        """Remove tracks (Track objects or IDs) on the server."""
        await self._update({"tracks": {"remove": [self._wire_id(track) for track in tracks]}})

    async def set_name(self, name: str) -> None:
        """Rename the playlist on the server."""
        await self._update({"name": name})

    async def delete(self) -> None:
        """
        Delete the playlist on the server and make this instance inert.

        Raises:
            CollectionDeletedError: If already deleted.
            ResponseError: If the server does not answer 204.
        """
        self._check_deletion()
        response = await self.context.make_request("delete", f"v1/playlists/{self.local_id}")
        if response.status_code != 204:
            raise ResponseError(response, details={"collection_id": self.collection_id})

        self._deleted = True
        self._cancel_refresh()
        self._listing.tracks = []
        self._collection_cache.remove_collection(self)
        self._subscribers.notify(self)
        logger.debug(f"Deleted playlist {self.collection_id}")

    def _wire_id(self, track: Any) -> str:
        track_id = track if isinstance(track, str) else track.track_id
        return self.context.to_local_id(track_id)

    async def _update(self, body: dict) -> None:
        self._check_deletion()
        response = await self.context.make_request("put", f"v1/playlists/{self.local_id}", body)
        if response.status_code != 200:
            raise ResponseError(response, details={"collection_id": self.collection_id})

        snapshot = parse_playlist(self.context, self._track_cache, self._collection_cache, response.response)
        if snapshot is not None:
            self._apply(snapshot)

    # =========================================================================
    # Merging and notification
    # =========================================================================

    def merge_from(self, other: "Playlist") -> bool:
        """
        Merge a snapshot of this playlist into this instance.

        Returns:
            True if subscribers were notified.

        Raises:
            CollectionDeletedError: If this playlist was deleted.
        """
        self._check_deletion()
        if other is self or other.collection_id != self.collection_id:
            return False
        if other.owner is not None:
            self.owner = other.owner
        self._last_checked = max(self._last_checked, other._last_checked)
        changed = self._listing.merge(other._listing)
        if changed:
            self._notify()
        return changed

    def _apply(self, snapshot: "Playlist") -> None:
        self.merge_from(snapshot)
        # Re-register; merges into the resident instance if self was evicted
        self._collection_cache.set_collection(self)

    def _notify(self) -> None:
        self._subscribers.notify(self)
        # A local change restarts the countdown to the next refresh
        if self._subscribers and not self._refreshing and not self._deleted:
            self._schedule_refresh()

    def register_update_callback(self, callback: Callable[["Playlist"], Any]) -> None:
        """
        Subscribe to changes. The first subscriber starts the refresh loop.
        """
        if self._subscribers.add(callback) and len(self._subscribers) == 1 and not self._deleted:
            self._schedule_refresh()

    def unregister_update_callback(self, callback: Callable[["Playlist"], Any]) -> None:
        """
        Unsubscribe. Removing the last subscriber stops the refresh loop.
        """
        self._subscribers.remove(callback)
        if not self._subscribers:
            self._cancel_refresh()

    # =========================================================================
    # Refresh loop
    # =========================================================================

    def _schedule_refresh(self) -> None:
        self._cancel_refresh()
        loop = asyncio.get_running_loop()
        self._refresh_handle = loop.call_later(self.context.playlist_update_frequency, self._on_refresh_timer)

    def _cancel_refresh(self) -> None:
        if self._refresh_handle is not None:
            self._refresh_handle.cancel()
            self._refresh_handle = None

    def _on_refresh_timer(self) -> None:
        self._refresh_handle = None
        self._refresh_task = asyncio.ensure_future(self._run_scheduled_refresh())

    async def _run_scheduled_refresh(self) -> None:
        try:
            await self.check_for_updates(0)
        except Exception as e:  # the loop outlives any single failed refresh
            log_refresh_failure(logger, self.collection_id, e)
        finally:
            if self._refresh_task is asyncio.current_task():
                self._refresh_task = None

    async def check_for_updates(self, out_of_date_threshold: float = 0) -> bool:
        """
        Fetch the server state and merge it into this playlist.

        Args:
            out_of_date_threshold: If non-zero, skip the fetch when the last
                                   check is more recent than this many seconds.

        Returns:
            False if the check was skipped, True if a fetch was made.

        Raises:
            CollectionDeletedError: If the playlist was deleted.
            ResponseError: If the fetch fails. The refresh loop is re-armed
                           before the error propagates.
        """
        self._check_deletion()
        if out_of_date_threshold and time.time() - out_of_date_threshold < self._last_checked:
            return False

        self._cancel_refresh()
        self._refreshing = True
        try:
            snapshot = await self._fetch_snapshot()
            self._apply(snapshot)
        finally:
            self._refreshing = False
            if self._subscribers and not self._deleted:
                self._schedule_refresh()
        return True

    async def _fetch_snapshot(self) -> "Playlist":
        response = await self.context.make_request("get", f"v1/playlists/{self.local_id}")
        self._last_checked = time.time()
        if response.status_code != 200:
            raise ResponseError(response, details={"collection_id": self.collection_id})
        snapshot = parse_playlist(self.context, self._track_cache, self._collection_cache, response.response)
        if snapshot is None:
            raise InvalidResponseError(response, "Server returned an invalid playlist",
                                       {"collection_id": self.collection_id})
        return snapshot

    # =========================================================================
    # Conversion
    # =========================================================================

    @staticmethod
    def from_json(context, track_cache, collection_cache, json: Any) -> "Playlist | None":
        """
        Convert a payload and return the cache-resident Playlist for it.

        If the playlist is already cached, the payload is merged into the
        cached instance and that instance is returned.

        Returns:
            Playlist, or None if the payload is not a valid playlist.
        """
        playlist = parse_playlist(context, track_cache, collection_cache, json)
        if playlist is None:
            return None
        return collection_cache.set_collection(playlist)


def parse_playlist(context, track_cache, collection_cache, json: Any) -> Playlist | None:
    """
    Build a detached Playlist from a payload without touching the cache.

    Expected shape:
        {collectionID: str | int, name: str,
         owner?: {userID: str, username: str} | null,
         trackList?: [{trackID: str, metadata?: ...}] | null}
    """
    if not isinstance(json, dict):
        return None
    collection_id = json.get("collectionID")
    if isinstance(collection_id, bool) or not isinstance(collection_id, (str, int)):
        return None
    if not isinstance(json.get("name"), str):
        return None

    owner = None
    if json.get("owner") is not None:
        owner = User.from_json(context, json["owner"])
        if owner is None:
            return None

    if not valid_track_list_json(json.get("trackList")):
        return None

    return Playlist(
        context,
        track_cache,
        collection_cache,
        context.qualify_id(str(collection_id)),
        json["name"],
        owner,
        parse_tracks(context, track_cache, json.get("trackList"))
    )
