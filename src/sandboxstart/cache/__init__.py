"""Local caching of GitHub API responses.

This module provides a disk-backed response cache with TTL-based expiry and
stale reads for rate-limit fallback.

Key components:
- CacheStore: Payload files plus the metadata index
- CacheMetadata: Index operations
- CacheEntry: Typed index row
- derive_cache_key: Request URI to cache key
"""

from sandboxstart.cache.metadata import (
    SOURCE_API,
    SOURCE_ATOM,
    CacheEntry,
    CacheMetadata,
)
from sandboxstart.cache.store import (
    CacheError,
    CacheStore,
    CacheWriteError,
    derive_cache_key,
)

__all__ = [
    "CacheStore",
    "CacheMetadata",
    "CacheEntry",
    "CacheError",
    "CacheWriteError",
    "derive_cache_key",
    "SOURCE_API",
    "SOURCE_ATOM",
]
