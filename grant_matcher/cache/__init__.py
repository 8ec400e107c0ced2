"""Hybrid local/remote result cache."""

from grant_matcher.cache.remote import RedisCacheTier, RemoteCacheTier
from grant_matcher.cache.store import CacheEntry, CacheStatistics, CacheStore

__all__ = [
    "CacheEntry",
    "CacheStatistics",
    "CacheStore",
    "RedisCacheTier",
    "RemoteCacheTier",
]
