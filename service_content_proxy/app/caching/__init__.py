"""
Content proxy caching package.

Provides the in-process result memoization used to avoid refetching mount
tables and documents from upstream hosts.
"""

from .memoize import (
    CacheEntry,
    LRUStore,
    configure_cache,
    default_hash,
    get_default_store,
    memoize,
)

__all__ = [
    "CacheEntry",
    "LRUStore",
    "configure_cache",
    "default_hash",
    "get_default_store",
    "memoize",
]
