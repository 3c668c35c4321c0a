"""
Sliding-expiry object cache.

ObjectCache maps a string key to one live object. Every get() that hits
and every put() resets that key's expiry timer, so an entry disappears
only after a full cache_time of inactivity. Expiry is driven by one
deferred callback per entry on the running event loop, not by sweeping.

put() never silently replaces a live entry: the incoming object is handed
to the merge function together with the resident one, and whatever the
merge returns becomes (or stays) the resident object. This is what keeps
exactly one live instance per key even when two fetches for the same key
race each other: the later put() merges into the earlier object instead
of creating a duplicate.

Expiry only forgets the entry. References already handed out stay valid
and are not notified.

All methods must be called from code running inside an asyncio event loop.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Generic, Iterator, TypeVar

from pipebomb.core.logger import get_logger


logger = get_logger(__name__)

T = TypeVar("T")

MergeFunction = Callable[[T, T], T]


@dataclass
class _Entry(Generic[T]):
    value: T
    timer: asyncio.TimerHandle | None = None


def replace(existing: T, incoming: T) -> T:
    """Merge function for caches that simply keep the newest object."""
    return incoming


class ObjectCache(Generic[T]):
    """
    Generic TTL map with merge-on-put.

    Attributes:
        cache_time: Seconds of inactivity after which an entry expires.
        merge: Called as merge(resident, incoming) when putting a key that
               already holds a live entry; returns the object to keep.
        name: Label used in log messages.

    Example:
        cache = ObjectCache(60, merge=merge_tracks, name="tracks")
        resident = cache.put(track.track_id, track)
        assert cache.get(track.track_id) is resident
    """

    def __init__(self, cache_time: float, merge: MergeFunction | None = None, name: str = "cache") -> None:
        self.cache_time = cache_time
        self.merge = merge or replace
        self.name = name
        self._entries: dict[str, _Entry[T]] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def get(self, key: str) -> T | None:
        """Return the live object for key, resetting its expiry, or None."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        self._reset_timer(key, entry)
        return entry.value

    def peek(self, key: str) -> T | None:
        """Return the live object for key without touching its expiry."""
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def put(self, key: str, value: T) -> T:
        """
        Store value under key, merging into a live entry if there is one.

        Returns:
            The resident object after the call. Callers must continue with
            this object rather than the one they passed in.
        """
        entry = self._entries.get(key)
        if entry is None:
            entry = _Entry(value)
            self._entries[key] = entry
        elif entry.value is not value:
            entry.value = self.merge(entry.value, value)
        self._reset_timer(key, entry)
        return entry.value

    def delete(self, key: str) -> T | None:
        """Forget key immediately. Returns the object that was cached, if any."""
        entry = self._entries.pop(key, None)
        if entry is None:
            return None
        if entry.timer is not None:
            entry.timer.cancel()
        return entry.value

    def clear(self) -> None:
        for key in list(self._entries):
            self.delete(key)

    def _reset_timer(self, key: str, entry: _Entry[T]) -> None:
        if entry.timer is not None:
            entry.timer.cancel()
        loop = asyncio.get_running_loop()
        entry.timer = loop.call_later(self.cache_time, self._expire, key, entry)

    def _expire(self, key: str, entry: _Entry[T]) -> None:
        # A delete()+put() may have installed a new entry under the same key
        if self._entries.get(key) is entry:
            del self._entries[key]
            logger.debug(f"{self.name}: expired {key}")
