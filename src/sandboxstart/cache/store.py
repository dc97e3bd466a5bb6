"""Disk-backed store for cached API responses."""

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import orjson

from sandboxstart.cache.metadata import (
    METADATA_FILE,
    SOURCE_API,
    VALID_SOURCES,
    CacheEntry,
    CacheMetadata,
)
from sandboxstart.cache.validation import is_expired, utcnow

logger = logging.getLogger(__name__)

# Characters replaced by "_" when turning a request URI into a cache key
KEY_SEPARATORS = ("/", "?", "&", "=", ":")


class CacheError(Exception):
    """Base exception for cache-related errors."""

    pass


class CacheWriteError(CacheError):
    """Raised internally when a payload or the index cannot be written."""

    pass


def derive_cache_key(uri: str, api_url: str = "https://api.github.com") -> str:
    """Convert a request URI to a filesystem-safe cache key.

    The API prefix is stripped (for other hosts only the scheme is
    dropped), surrounding slashes are trimmed and each of ``/ ? & = :``
    becomes ``_``. Distinct URIs may still collide (``a/b`` and ``a_b``),
    which is acceptable for the endpoint shapes this package requests.

    Args:
        uri: Full request URI
        api_url: Base URL of the REST API

    Returns:
        Cache key

    Examples:
        >>> derive_cache_key('https://api.github.com/repos/o/r/releases?per_page=5')
        'repos_o_r_releases_per_page_5'
        >>> derive_cache_key('https://api.github.com/rate_limit')
        'rate_limit'
    """
    prefix = api_url.rstrip("/")
    if uri.startswith(prefix):
        remainder = uri[len(prefix) :]
    elif "://" in uri:
        remainder = uri.split("://", 1)[1]
    else:
        remainder = uri

    key = remainder.strip("/")
    for separator in KEY_SEPARATORS:
        key = key.replace(separator, "_")
    return key


class CacheStore:
    """Caches decoded API responses on disk with a per-key TTL.

    Each payload is stored as ``<key>.json``; expiry and provenance live in
    the shared metadata index. Write failures are logged and swallowed so
    that a broken cache never blocks a caller.
    """

    def __init__(
        self,
        cache_dir: Path,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize cache store.

        Args:
            cache_dir: Directory for payload files and the index. Created on first write.
            clock: Callable returning the current UTC time (for tests)
        """
        self.cache_dir = Path(cache_dir)
        self.clock = clock or utcnow
        self.metadata = CacheMetadata(self.cache_dir)

    def _get_payload_path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"

    def get(self, key: str, ignore_expiry: bool = False) -> Optional[Any]:
        """Read a cached payload.

        Args:
            key: Cache key
            ignore_expiry: Return the payload even if the entry is expired

        Returns:
            The decoded payload, or None if absent, undecodable or expired
        """
        payload_path = self._get_payload_path(key)
        if not payload_path.exists():
            return None

        if not ignore_expiry:
            entry = self.metadata.get_entry(key)
            expires_at = entry.expires_at if entry else None
            if is_expired(expires_at, self.clock()):
                logger.debug(f"Cache entry {key} is expired")
                return None

        try:
            return orjson.loads(payload_path.read_bytes())
        except (orjson.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable cache entry {key}: {e}")
            return None

    def put(
        self,
        key: str,
        payload: Any,
        ttl_minutes: int,
        source: str = SOURCE_API,
    ) -> bool:
        """Write a payload and refresh its index entry.

        Args:
            key: Cache key
            payload: JSON-serializable value
            ttl_minutes: Time-to-live in minutes
            source: Provenance ('api' or 'atom')

        Returns:
            True if written, False if the write failed (already logged)
        """
        if source not in VALID_SOURCES:
            raise ValueError(f"Unknown cache source: {source}")

        try:
            self._write(key, payload, ttl_minutes, source)
        except CacheWriteError as e:
            logger.warning(f"Failed to cache {key}: {e}")
            return False
        return True

    def _write(self, key: str, payload: Any, ttl_minutes: int, source: str) -> None:
        try:
            content = orjson.dumps(payload, option=orjson.OPT_INDENT_2)
        except TypeError as e:
            raise CacheWriteError(f"Payload is not JSON-serializable: {e}") from e

        payload_path = self._get_payload_path(key)
        temp_path = payload_path.with_name(payload_path.name + ".tmp")

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            temp_path.write_bytes(content)
            temp_path.replace(payload_path)
            self.metadata.set_entry(key, self.clock(), ttl_minutes, source)
        except OSError as e:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError as cleanup_error:
                    logger.warning(f"Failed to clean up temp file: {cleanup_error}")
            raise CacheWriteError(str(e)) from e

    def entry(self, key: str) -> Optional[CacheEntry]:
        """Get index metadata for a key, or None if not indexed."""
        return self.metadata.get_entry(key)

    def entries(self) -> Dict[str, CacheEntry]:
        """Get index metadata for every cached key."""
        return self.metadata.get_all_entries()

    def is_fresh(self, key: str) -> bool:
        """Check whether a key has an unexpired entry."""
        entry = self.metadata.get_entry(key)
        if entry is None:
            return False
        return not is_expired(entry.expires_at, self.clock())

    def clear(self) -> None:
        """Delete the whole cache directory. Clearing a missing cache is a no-op."""
        if self.cache_dir.exists():
            shutil.rmtree(self.cache_dir)
            logger.info(f"Cleared cache at {self.cache_dir}")

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics.

        Returns:
            Statistics dict
        """
        entries = self.entries()
        now = self.clock()
        expired = sum(
            1
            for e in entries.values()
            if e.expires_at is None or now > e.expires_at
        )

        total_size = 0
        if self.cache_dir.exists():
            for path in self.cache_dir.glob("*.json"):
                if path.name != METADATA_FILE:
                    total_size += path.stat().st_size

        return {
            "cache_dir": str(self.cache_dir),
            "total_entries": len(entries),
            "expired_entries": expired,
            "total_size_bytes": total_size,
            "sources": {
                source: sum(1 for e in entries.values() if e.source == source)
                for source in VALID_SOURCES
            },
        }
