"""Tests for the sliding-expiry object cache"""

import asyncio

import pytest

from pipebomb.cache import ObjectCache


class Box:
    def __init__(self, key, value):
        self.key = key
        self.value = value


def merge_boxes(resident, incoming):
    resident.value = incoming.value
    return resident


class TestObjectCache:
    """Test put/get, merge-on-put and expiry"""

    @pytest.mark.asyncio
    async def test_put_then_get(self):
        """A stored object is returned as-is"""
        cache = ObjectCache(10, merge_boxes)
        box = Box("a", 1)
        assert cache.put("a", box) is box
        assert cache.get("a") is box
        assert "a" in cache
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_second_put_merges_into_resident(self):
        """Putting a new object under a live key keeps one instance"""
        cache = ObjectCache(10, merge_boxes)
        first = cache.put("a", Box("a", 1))
        second = cache.put("a", Box("a", 2))
        assert second is first
        assert cache.get("a").value == 2
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_default_merge_replaces(self):
        """Without a merge function the newest object wins"""
        cache = ObjectCache(10)
        cache.put("a", Box("a", 1))
        newer = Box("a", 2)
        assert cache.put("a", newer) is newer

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self):
        """An untouched entry is gone after the cache time"""
        cache = ObjectCache(0.05, merge_boxes)
        cache.put("a", Box("a", 1))
        await asyncio.sleep(0.15)
        assert cache.get("a") is None
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_get_slides_expiry(self):
        """Every hit restarts the countdown"""
        cache = ObjectCache(0.2, merge_boxes)
        cache.put("a", Box("a", 1))
        await asyncio.sleep(0.12)
        assert cache.get("a") is not None
        await asyncio.sleep(0.12)
        assert cache.get("a") is not None
        await asyncio.sleep(0.3)
        assert cache.peek("a") is None

    @pytest.mark.asyncio
    async def test_peek_does_not_slide_expiry(self):
        """peek() reads without keeping the entry alive"""
        cache = ObjectCache(0.2, merge_boxes)
        cache.put("a", Box("a", 1))
        await asyncio.sleep(0.12)
        assert cache.peek("a") is not None
        await asyncio.sleep(0.15)
        assert cache.peek("a") is None

    @pytest.mark.asyncio
    async def test_stale_timer_does_not_remove_new_entry(self):
        """Expiry of a deleted entry leaves a re-added key alone"""
        cache = ObjectCache(0.1, merge_boxes)
        cache.put("a", Box("a", 1))
        cache.delete("a")
        cache.put("a", Box("a", 2))
        await asyncio.sleep(0.05)
        assert cache.peek("a").value == 2

    @pytest.mark.asyncio
    async def test_delete_and_clear(self):
        """Deleting returns the object; clearing empties the cache"""
        cache = ObjectCache(10, merge_boxes)
        box = cache.put("a", Box("a", 1))
        cache.put("b", Box("b", 2))
        assert cache.delete("a") is box
        assert cache.delete("a") is None
        cache.clear()
        assert len(cache) == 0
        assert list(cache) == []
