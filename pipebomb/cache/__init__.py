"""Sliding-expiry object cache shared by the track and collection caches."""

from pipebomb.cache.object_cache import ObjectCache, replace

__all__ = ["ObjectCache", "replace"]
